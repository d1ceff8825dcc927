"""User-context assembly for prompt personalization."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from aguwai.memory.models import EventType, MemoryEvent, UserProfile

if TYPE_CHECKING:
    from aguwai.memory.store import MemoryStore

logger = logging.getLogger(__name__)

HIGH_IMPORTANCE = 0.7
MAX_CONTEXT_EVENTS = 5
MAX_RECENT_LOCATIONS = 3


def _latest_resume_line(profile: UserProfile) -> str | None:
    if not profile.resume_analyses:
        return None
    latest = profile.resume_analyses[-1]
    score = latest.analysis.get("score", latest.analysis.get("overallScore"))
    if score is None:
        return None
    return f"- Latest resume score: {score}/100 ({latest.timestamp[:10]})"


def _recent_locations_line(profile: UserProfile) -> str | None:
    locations: list[str] = []
    seen: set[str] = set()
    for entry in reversed(profile.search_history):
        location = entry.query.get("location")
        if not isinstance(location, str) or not location.strip():
            continue
        key = location.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        locations.append(location.strip())
        if len(locations) >= MAX_RECENT_LOCATIONS:
            break
    if not locations:
        return None
    return f"- Recent search locations: {', '.join(locations)}"


def describe_event(event: MemoryEvent) -> str:
    """Render one memory event as a single context line."""
    label = event.event_type.replace("_", " ")
    data = event.event_data

    if event.event_type == EventType.RESUME_ANALYSIS:
        score = data.get("score", data.get("overallScore"))
        detail = f"Score {score}/100" if score is not None else "Resume reviewed"
    elif event.event_type == EventType.JOB_SEARCH:
        count = data.get("result_count", 0)
        location = (data.get("query") or {}).get("location")
        detail = f"Found {count} matches"
        if location:
            detail += f" in {location}"
    elif event.event_type == EventType.INTERVIEW_PREP:
        position = data.get("position")
        detail = f"Prepared for {position}" if position else "Interview preparation"
    else:
        detail = json.dumps(data)[:120]

    return f"- Important {label}: {detail}"


async def build_user_context(store: MemoryStore, user_id: str) -> str:
    """Summarize a user's long-term memory for the agent prompt.

    Sections, in priority order: latest resume score, up to three recent
    distinct search locations, up to five high-importance events, and raw
    preferences. Returns "" when the user has no profile (or nothing worth
    saying), which callers treat as "no personalization available".
    Every event rendered counts as an access for retention purposes.
    """
    profile = await store.get_user_profile(user_id)
    if profile is None:
        return ""

    lines: list[str] = []
    for line in (_latest_resume_line(profile), _recent_locations_line(profile)):
        if line:
            lines.append(line)

    events = await store.get_memory_events(
        user_id, min_importance=HIGH_IMPORTANCE, limit=MAX_CONTEXT_EVENTS
    )
    lines.extend(describe_event(event) for event in events)
    if events:
        await store.touch_memory_events(event.id for event in events)

    if profile.preferences:
        lines.append(f"- User preferences: {json.dumps(profile.preferences)}")

    if not lines:
        return ""
    return "User context:\n" + "\n".join(lines) + "\n"
