"""MemoryStore — SQLite persistence for assistant memory.

Holds four kinds of state:

- **Thread memory** (short-term): the rolling message log of one
  conversation, with a sliding 24h expiry.
- **User profiles** (long-term): bounded histories of resume analyses,
  job searches and interview preparation, plus free-form preferences.
- **Memory events**: importance-scored records used for context assembly
  and retention decisions.
- **Checkpoints and task results**: recovery snapshots of in-progress
  orchestration runs and an audit trail of tool outputs.

Capped-history writes run inside ``BEGIN IMMEDIATE`` transactions so the
read-append-trim cycle and its memory event commit together.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from aguwai.config import settings
from aguwai.db import get_connection
from aguwai.memory.context import build_user_context
from aguwai.memory.models import (
    Checkpoint,
    CleanupReport,
    EventType,
    InterviewEntry,
    MemoryEvent,
    MemoryStats,
    ResumeAnalysisEntry,
    SearchEntry,
    TaskResult,
    ThreadMemory,
    ThreadMessage,
    UserProfile,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable, Sequence
    from pathlib import Path

    import aiosqlite

logger = logging.getLogger(__name__)

DEFAULT_IMPORTANCE = 0.5
SEARCH_HIT_IMPORTANCE = 0.7
SEARCH_MISS_IMPORTANCE = 0.3
INTERVIEW_IMPORTANCE = 0.5

# Cleanup keeps low-importance events that are still being read.
CLEANUP_MAX_IMPORTANCE = 0.3
CLEANUP_MAX_ACCESS_COUNT = 5

_SCHEMA = """
CREATE TABLE IF NOT EXISTS thread_memory (
    thread_id   TEXT PRIMARY KEY,
    user_id     TEXT,
    messages    TEXT NOT NULL DEFAULT '[]',
    metadata    TEXT NOT NULL DEFAULT '{}',
    last_agent  TEXT,
    version     INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_thread_memory_user_id ON thread_memory(user_id);
CREATE INDEX IF NOT EXISTS idx_thread_memory_expires_at ON thread_memory(expires_at);

CREATE TABLE IF NOT EXISTS session_threads (
    session_id  TEXT PRIMARY KEY,
    thread_id   TEXT NOT NULL,
    user_id     TEXT,
    updated_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_session_threads_expires_at ON session_threads(expires_at);

CREATE TABLE IF NOT EXISTS user_profiles (
    user_id            TEXT PRIMARY KEY,
    preferences        TEXT,
    resume_analyses    TEXT,
    search_history     TEXT,
    interview_history  TEXT,
    last_active        TEXT NOT NULL,
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS memory_events (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id           TEXT NOT NULL,
    event_type        TEXT NOT NULL,
    event_data        TEXT NOT NULL,
    importance_score  REAL NOT NULL DEFAULT 0.5,
    access_count      INTEGER NOT NULL DEFAULT 0,
    last_accessed     TEXT NOT NULL,
    created_at        TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_memory_events_user_id ON memory_events(user_id);
CREATE INDEX IF NOT EXISTS idx_memory_events_importance ON memory_events(importance_score DESC);

CREATE TABLE IF NOT EXISTS checkpoints (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    thread_id        TEXT NOT NULL,
    agent_name       TEXT NOT NULL,
    checkpoint_data  TEXT NOT NULL,
    step_number      INTEGER NOT NULL,
    created_at       TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_checkpoints_thread_id ON checkpoints(thread_id);

CREATE TABLE IF NOT EXISTS task_results (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     TEXT,
    thread_id   TEXT,
    agent_name  TEXT NOT NULL,
    task        TEXT NOT NULL,
    result      TEXT,
    confidence  REAL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_task_results_thread_id ON task_results(thread_id);
"""

_PROFILE_HISTORY_COLUMNS = frozenset({"resume_analyses", "search_history", "interview_history"})


class MemoryStoreError(Exception):
    """The backing database failed during a memory operation."""


class ThreadConflictError(MemoryStoreError):
    """A version-checked thread write lost against a concurrent writer."""

    def __init__(self, thread_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Thread {thread_id} changed concurrently (expected version {expected}, found {actual})"
        )
        self.thread_id = thread_id
        self.expected = expected
        self.actual = actual


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(dt: datetime) -> str:
    """ISO 8601 UTC with fixed microsecond precision, so values sort lexically."""
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def make_thread_id() -> str:
    """Generate a new thread ID."""
    return f"thread_{uuid.uuid4().hex}"


def resume_importance(analysis: dict[str, Any]) -> float:
    """Importance of a resume analysis: its score out of 100, clamped to [0, 1].

    A missing, non-numeric or non-positive score falls back to 0.5.
    """
    score = analysis.get("score", analysis.get("overallScore"))
    if isinstance(score, bool) or not isinstance(score, int | float) or score <= 0:
        return DEFAULT_IMPORTANCE
    return min(score / 100, 1.0)


def search_importance(results: Sequence[Any]) -> float:
    return SEARCH_HIT_IMPORTANCE if results else SEARCH_MISS_IMPORTANCE


def _result_ref(result: Any) -> Any:
    if isinstance(result, dict):
        return result.get("id", result)
    return getattr(result, "id", result)


def _loads(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    return json.loads(raw)


class MemoryStore:
    """Persists assistant memory in SQLite.

    Singleton accessed via ``MemoryStore.get()``. Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``) and a *clock* to
    control time-based behaviour.
    """

    _instance: MemoryStore | None = None

    def __init__(
        self,
        db_path: Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db_path = db_path
        self._clock = clock or _utcnow
        self._initialised = False

    @classmethod
    def get(cls) -> MemoryStore:
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    async def _connect(self) -> aiosqlite.Connection:
        db = await get_connection(self._db_path)
        if not self._initialised:
            await db.executescript(_SCHEMA)
            self._initialised = True
        return db

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection; database failures surface as MemoryStoreError."""
        try:
            db = await self._connect()
        except (sqlite3.Error, OSError) as exc:
            logger.error("Memory store unavailable during %s: %s", operation, exc)
            raise MemoryStoreError(f"{operation} failed: {exc}") from exc
        try:
            yield db
        except sqlite3.Error as exc:
            logger.error("Memory store error during %s: %s", operation, exc)
            raise MemoryStoreError(f"{operation} failed: {exc}") from exc
        finally:
            await db.close()

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Run the block in a write transaction, rolled back on any error."""
        async with self._session(operation) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield db
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            await db.execute("COMMIT")

    # -- Thread memory (short-term) --------------------------------------------

    async def save_thread_memory(
        self,
        thread_id: str,
        user_id: str | None,
        messages: Sequence[ThreadMessage | dict[str, Any]],
        metadata: dict[str, Any] | None = None,
        last_agent: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> int:
        """Upsert a thread and refresh its expiry. Returns the new version.

        With *expected_version*, the write only succeeds if the live thread
        is still at that version (0 for a thread that does not exist or has
        expired); otherwise ``ThreadConflictError`` is raised.
        """
        now = self._now()
        now_iso = _iso(now)
        expires_at = _iso(now + timedelta(hours=settings.thread_ttl_hours))
        serialized = json.dumps(
            [ThreadMessage.model_validate(m).model_dump(exclude_none=True) for m in messages]
        )

        async with self._transaction("save_thread_memory") as db:
            cursor = await db.execute(
                "SELECT version, expires_at FROM thread_memory WHERE thread_id = ?",
                (thread_id,),
            )
            row = await cursor.fetchone()
            stored_version = row[0] if row else 0
            live_version = stored_version if row and row[1] > now_iso else 0
            if expected_version is not None and expected_version != live_version:
                raise ThreadConflictError(thread_id, expected_version, live_version)

            new_version = stored_version + 1
            await db.execute(
                """
                INSERT INTO thread_memory
                    (thread_id, user_id, messages, metadata, last_agent, version,
                     created_at, updated_at, expires_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(thread_id) DO UPDATE SET
                    user_id = COALESCE(excluded.user_id, thread_memory.user_id),
                    messages = excluded.messages,
                    metadata = excluded.metadata,
                    last_agent = excluded.last_agent,
                    version = excluded.version,
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
                """,
                (
                    thread_id,
                    user_id,
                    serialized,
                    json.dumps(metadata or {}),
                    last_agent,
                    new_version,
                    now_iso,
                    now_iso,
                    expires_at,
                ),
            )
        logger.debug("Saved thread %s (version %d, %d messages)", thread_id, new_version, len(messages))
        return new_version

    async def get_thread_memory(self, thread_id: str) -> ThreadMemory | None:
        """Fetch a live thread, or None if it is missing or past its expiry."""
        async with self._session("get_thread_memory") as db:
            cursor = await db.execute(
                """
                SELECT thread_id, user_id, messages, metadata, last_agent, version,
                       updated_at, expires_at
                FROM thread_memory
                WHERE thread_id = ? AND expires_at > ?
                """,
                (thread_id, _iso(self._now())),
            )
            row = await cursor.fetchone()
        if not row:
            return None
        return ThreadMemory(
            thread_id=row[0],
            user_id=row[1],
            messages=_loads(row[2], []),
            metadata=_loads(row[3], {}),
            last_agent=row[4],
            version=row[5],
            updated_at=row[6],
            expires_at=row[7],
        )

    async def resolve_session_thread(self, session_id: str, user_id: str | None = None) -> str:
        """Return the thread bound to *session_id*, minting one if needed.

        The mapping has the same sliding expiry discipline as threads.
        """
        now = self._now()
        now_iso = _iso(now)
        expires_at = _iso(now + timedelta(hours=settings.session_ttl_hours))

        async with self._transaction("resolve_session_thread") as db:
            cursor = await db.execute(
                "SELECT thread_id FROM session_threads WHERE session_id = ? AND expires_at > ?",
                (session_id, now_iso),
            )
            row = await cursor.fetchone()
            thread_id = row[0] if row else make_thread_id()
            await db.execute(
                """
                INSERT INTO session_threads (session_id, thread_id, user_id, updated_at, expires_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    thread_id = excluded.thread_id,
                    user_id = COALESCE(excluded.user_id, session_threads.user_id),
                    updated_at = excluded.updated_at,
                    expires_at = excluded.expires_at
                """,
                (session_id, thread_id, user_id, now_iso, expires_at),
            )
        if not row:
            logger.info("Bound session %s to new thread %s", session_id, thread_id)
        return thread_id

    # -- User profiles (long-term) ---------------------------------------------

    async def save_user_profile(
        self,
        user_id: str,
        *,
        preferences: dict[str, Any] | None = None,
        resume_analyses: list[ResumeAnalysisEntry] | None = None,
        search_history: list[SearchEntry] | None = None,
        interview_history: list[InterviewEntry] | None = None,
    ) -> None:
        """Upsert a profile, touching only the fields that were supplied."""

        def _dump(entries: list[Any] | None) -> str | None:
            if entries is None:
                return None
            return json.dumps(
                [e.model_dump() if hasattr(e, "model_dump") else e for e in entries]
            )

        now_iso = _iso(self._now())
        async with self._session("save_user_profile") as db:
            await db.execute(
                """
                INSERT INTO user_profiles
                    (user_id, preferences, resume_analyses, search_history,
                     interview_history, last_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    preferences = COALESCE(excluded.preferences, user_profiles.preferences),
                    resume_analyses = COALESCE(excluded.resume_analyses, user_profiles.resume_analyses),
                    search_history = COALESCE(excluded.search_history, user_profiles.search_history),
                    interview_history = COALESCE(
                        excluded.interview_history, user_profiles.interview_history
                    ),
                    last_active = excluded.last_active,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    json.dumps(preferences) if preferences is not None else None,
                    _dump(resume_analyses),
                    _dump(search_history),
                    _dump(interview_history),
                    now_iso,
                    now_iso,
                    now_iso,
                ),
            )

    async def get_user_profile(self, user_id: str) -> UserProfile | None:
        """Fetch a profile by user ID, or None if the user has none."""
        async with self._session("get_user_profile") as db:
            cursor = await db.execute(
                """
                SELECT user_id, preferences, resume_analyses, search_history,
                       interview_history, last_active
                FROM user_profiles WHERE user_id = ?
                """,
                (user_id,),
            )
            row = await cursor.fetchone()
        if not row:
            return None
        return UserProfile(
            user_id=row[0],
            preferences=_loads(row[1], {}),
            resume_analyses=_loads(row[2], []),
            search_history=_loads(row[3], []),
            interview_history=_loads(row[4], []),
            last_active=row[5],
        )

    async def save_resume_analysis(self, user_id: str, analysis: dict[str, Any]) -> None:
        """Append a resume analysis (keeping the newest N) and record an event."""
        now_iso = _iso(self._now())
        entry = ResumeAnalysisEntry(timestamp=now_iso, analysis=analysis)
        await self._append_capped(
            "save_resume_analysis",
            user_id,
            column="resume_analyses",
            entry=entry.model_dump(),
            limit=settings.resume_history_limit,
            event_type=EventType.RESUME_ANALYSIS,
            event_data=analysis,
            importance=resume_importance(analysis),
        )

    async def save_search_history(
        self,
        user_id: str,
        query: dict[str, Any],
        results: Sequence[Any] = (),
    ) -> None:
        """Append a job search (keeping the newest N) and record an event."""
        now_iso = _iso(self._now())
        entry = SearchEntry(
            timestamp=now_iso,
            query=query,
            result_refs=[_result_ref(r) for r in results],
        )
        await self._append_capped(
            "save_search_history",
            user_id,
            column="search_history",
            entry=entry.model_dump(),
            limit=settings.search_history_limit,
            event_type=EventType.JOB_SEARCH,
            event_data={"query": query, "result_count": len(results)},
            importance=search_importance(results),
        )

    async def save_interview_prep(self, user_id: str, prep: dict[str, Any]) -> None:
        """Append an interview preparation (keeping the newest N) and record an event."""
        now_iso = _iso(self._now())
        entry = InterviewEntry(timestamp=now_iso, prep=prep)
        await self._append_capped(
            "save_interview_prep",
            user_id,
            column="interview_history",
            entry=entry.model_dump(),
            limit=settings.interview_history_limit,
            event_type=EventType.INTERVIEW_PREP,
            event_data=prep,
            importance=INTERVIEW_IMPORTANCE,
        )

    async def _append_capped(
        self,
        operation: str,
        user_id: str,
        *,
        column: str,
        entry: dict[str, Any],
        limit: int,
        event_type: EventType,
        event_data: dict[str, Any],
        importance: float,
    ) -> None:
        if column not in _PROFILE_HISTORY_COLUMNS:
            msg = f"Not a profile history column: {column}"
            raise ValueError(msg)

        now_iso = _iso(self._now())
        async with self._transaction(operation) as db:
            cursor = await db.execute(
                f"SELECT {column} FROM user_profiles WHERE user_id = ?",  # noqa: S608
                (user_id,),
            )
            row = await cursor.fetchone()
            items: list[Any] = _loads(row[0] if row else None, [])
            items.append(entry)
            items = items[-limit:]

            await db.execute(
                f"""
                INSERT INTO user_profiles
                    (user_id, {column}, last_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    {column} = excluded.{column},
                    last_active = excluded.last_active,
                    updated_at = excluded.updated_at
                """,  # noqa: S608
                (user_id, json.dumps(items), now_iso, now_iso, now_iso),
            )
            await db.execute(
                """
                INSERT INTO memory_events
                    (user_id, event_type, event_data, importance_score, access_count,
                     last_accessed, created_at)
                VALUES (?, ?, ?, ?, 0, ?, ?)
                """,
                (user_id, str(event_type), json.dumps(event_data), importance, now_iso, now_iso),
            )
        logger.info(
            "Recorded %s for user %s (importance %.2f, %d kept)",
            event_type,
            user_id,
            importance,
            len(items),
        )

    # -- Memory events ---------------------------------------------------------

    async def get_memory_events(
        self,
        user_id: str,
        *,
        min_importance: float = 0.0,
        limit: int = 20,
    ) -> list[MemoryEvent]:
        """Events for a user, most important first, newest first within a score."""
        async with self._session("get_memory_events") as db:
            cursor = await db.execute(
                """
                SELECT id, user_id, event_type, event_data, importance_score,
                       access_count, last_accessed, created_at
                FROM memory_events
                WHERE user_id = ? AND importance_score >= ?
                ORDER BY importance_score DESC, created_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, min_importance, limit),
            )
            rows = await cursor.fetchall()
        return [
            MemoryEvent(
                id=row[0],
                user_id=row[1],
                event_type=row[2],
                event_data=_loads(row[3], {}),
                importance_score=row[4],
                access_count=row[5],
                last_accessed=row[6],
                created_at=row[7],
            )
            for row in rows
        ]

    async def touch_memory_events(self, event_ids: Iterable[int]) -> int:
        """Bump the access count of each event. Returns the number updated."""
        ids = list(event_ids)
        if not ids:
            return 0
        now_iso = _iso(self._now())
        async with self._transaction("touch_memory_events") as db:
            updated = 0
            for event_id in ids:
                cursor = await db.execute(
                    """
                    UPDATE memory_events
                    SET access_count = access_count + 1, last_accessed = ?
                    WHERE id = ?
                    """,
                    (now_iso, event_id),
                )
                updated += cursor.rowcount
        return updated

    async def touch_memory_event(self, event_id: int) -> bool:
        return await self.touch_memory_events([event_id]) > 0

    async def get_user_context(self, user_id: str) -> str:
        """Natural-language summary of a user's long-term memory ("" if none)."""
        return await build_user_context(self, user_id)

    # -- Checkpoints and task results ------------------------------------------

    async def save_checkpoint(
        self,
        thread_id: str,
        agent_name: str,
        data: dict[str, Any],
        step_number: int = 0,
    ) -> None:
        """Append a recovery checkpoint. Checkpoints are never overwritten."""
        async with self._session("save_checkpoint") as db:
            await db.execute(
                """
                INSERT INTO checkpoints (thread_id, agent_name, checkpoint_data, step_number, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (thread_id, agent_name, json.dumps(data), step_number, _iso(self._now())),
            )

    async def get_latest_checkpoint(self, thread_id: str) -> Checkpoint | None:
        """Return the most recently written checkpoint for a thread."""
        async with self._session("get_latest_checkpoint") as db:
            cursor = await db.execute(
                """
                SELECT thread_id, agent_name, step_number, checkpoint_data, created_at
                FROM checkpoints
                WHERE thread_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (thread_id,),
            )
            row = await cursor.fetchone()
        if not row:
            return None
        return Checkpoint(
            thread_id=row[0],
            agent_name=row[1],
            step_number=row[2],
            data=_loads(row[3], {}),
            created_at=row[4],
        )

    async def save_task_result(
        self,
        task_result: TaskResult,
        *,
        user_id: str | None = None,
        thread_id: str | None = None,
    ) -> None:
        """Write an audit record of a tool's output."""
        async with self._session("save_task_result") as db:
            await db.execute(
                """
                INSERT INTO task_results
                    (user_id, thread_id, agent_name, task, result, confidence, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    thread_id,
                    task_result.agent_name,
                    task_result.task,
                    task_result.result,
                    task_result.confidence,
                    json.dumps(task_result.metadata),
                    _iso(self._now()),
                ),
            )

    # -- Retention -------------------------------------------------------------

    async def run_cleanup(self) -> CleanupReport:
        """Apply the retention policy, one autocommit DELETE per table."""
        now = self._now()
        now_iso = _iso(now)
        event_cutoff = _iso(now - timedelta(days=settings.event_retention_days))
        checkpoint_cutoff = _iso(now - timedelta(days=settings.checkpoint_retention_days))

        async with self._session("run_cleanup") as db:
            threads = await db.execute(
                "DELETE FROM thread_memory WHERE expires_at < ?", (now_iso,)
            )
            sessions = await db.execute(
                "DELETE FROM session_threads WHERE expires_at < ?", (now_iso,)
            )
            events = await db.execute(
                """
                DELETE FROM memory_events
                WHERE created_at < ? AND importance_score < ? AND access_count < ?
                """,
                (event_cutoff, CLEANUP_MAX_IMPORTANCE, CLEANUP_MAX_ACCESS_COUNT),
            )
            checkpoints = await db.execute(
                "DELETE FROM checkpoints WHERE created_at < ?", (checkpoint_cutoff,)
            )
            report = CleanupReport(
                threads=threads.rowcount,
                sessions=sessions.rowcount,
                events=events.rowcount,
                checkpoints=checkpoints.rowcount,
            )

        logger.info(
            "Memory cleanup removed %d thread(s), %d session(s), %d event(s), %d checkpoint(s)",
            report.threads,
            report.sessions,
            report.events,
            report.checkpoints,
        )
        return report

    async def get_memory_stats(self) -> MemoryStats:
        """Row counts for monitoring."""
        async with self._session("get_memory_stats") as db:
            cursor = await db.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM thread_memory WHERE expires_at > ?),
                    (SELECT COUNT(*) FROM user_profiles),
                    (SELECT COUNT(*) FROM memory_events),
                    (SELECT AVG(importance_score) FROM memory_events),
                    (SELECT COUNT(*) FROM checkpoints)
                """,
                (_iso(self._now()),),
            )
            row = await cursor.fetchone()
        return MemoryStats(
            active_threads=row[0],
            user_profiles=row[1],
            memory_events=row[2],
            avg_importance=row[3],
            checkpoints=row[4],
        )
