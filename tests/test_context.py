"""Tests for user-context assembly."""

from aguwai.memory.context import MAX_CONTEXT_EVENTS, describe_event
from aguwai.memory.models import EventType, MemoryEvent
from aguwai.memory.store import MemoryStore


async def test_no_profile_gives_empty_context(store: MemoryStore) -> None:
    assert await store.get_user_context("ghost") == ""


async def test_profile_with_nothing_notable_gives_empty_context(store: MemoryStore) -> None:
    await store.save_search_history("u1", {"subject": "math"}, [])
    assert await store.get_user_context("u1") == ""


async def test_context_sections_in_order(store: MemoryStore, clock) -> None:
    await store.save_user_profile("u1", preferences={"schoolType": "government"})
    await store.save_resume_analysis("u1", {"score": 82, "feedback": "Solid"})
    clock.advance(minutes=1)
    await store.save_search_history("u1", {"location": "Guwahati"}, [1])

    context = await store.get_user_context("u1")

    lines = context.splitlines()
    assert lines[0] == "User context:"
    assert lines[1] == "- Latest resume score: 82/100 (2025-03-01)"
    assert lines[2] == "- Recent search locations: Guwahati"
    assert lines[3] == "- Important resume analysis: Score 82/100"
    assert lines[4] == "- Important job search: Found 1 matches in Guwahati"
    assert lines[5] == '- User preferences: {"schoolType": "government"}'


async def test_recent_locations_are_distinct_and_newest_first(store: MemoryStore) -> None:
    for location in ("Guwahati", "Jorhat", "guwahati", "Tezpur", "Dibrugarh"):
        await store.save_search_history("u1", {"location": location}, [])

    context = await store.get_user_context("u1")
    assert "- Recent search locations: Dibrugarh, Tezpur, guwahati\n" in context


async def test_context_caps_important_events_and_touches_them(store: MemoryStore) -> None:
    for score in (70, 75, 80, 85, 90, 95, 99):
        await store.save_resume_analysis("u1", {"score": score})

    context = await store.get_user_context("u1")

    important = [line for line in context.splitlines() if line.startswith("- Important")]
    assert len(important) == MAX_CONTEXT_EVENTS
    assert important[0] == "- Important resume analysis: Score 99/100"
    touched = {e.event_data["score"]: e.access_count for e in await store.get_memory_events("u1")}
    assert touched[99] == 1
    assert touched[70] == 0


def test_describe_interview_event() -> None:
    event = MemoryEvent(
        id=1,
        user_id="u1",
        event_type=EventType.INTERVIEW_PREP,
        event_data={"position": "Science Teacher"},
    )
    assert describe_event(event) == "- Important interview prep: Prepared for Science Teacher"
