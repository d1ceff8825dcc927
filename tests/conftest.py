"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from aguwai.memory.store import MemoryStore
from aguwai.repositories.documents import DocumentNotFoundError
from aguwai.repositories.jobs import JobFilter, JobListing, matches

START = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for time-based store behaviour."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class ScriptedLLM:
    """LLM provider that replays canned responses in order.

    An exception in the script is raised instead of returned.
    """

    def __init__(self, *responses: str | BaseException) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def complete(self, messages: list[dict], *, system: str | None = None) -> str:
        self.calls.append({"messages": messages, "system": system})
        if not self.responses:
            msg = "ScriptedLLM has no responses left"
            raise AssertionError(msg)
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class FakeJobRepository:
    """In-memory job listings with the portal's matching rules."""

    def __init__(self, jobs: list[JobListing] | None = None) -> None:
        self.jobs = jobs or []
        self.queries: list[JobFilter] = []

    async def query(self, job_filter: JobFilter) -> list[JobListing]:
        self.queries.append(job_filter)
        return [job for job in self.jobs if matches(job, job_filter)]


class FakeDocumentRepository:
    def __init__(self, documents: dict[str, str] | None = None) -> None:
        self.documents = documents or {}

    async def get_text(self, document_id: str) -> str:
        if document_id not in self.documents:
            raise DocumentNotFoundError(document_id)
        return self.documents[document_id]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock: FakeClock) -> MemoryStore:
    """MemoryStore on a temporary database, driven by the fake clock."""
    MemoryStore._reset()
    s = MemoryStore(db_path=tmp_path / "memory.db", clock=clock)
    MemoryStore._instance = s
    yield s
    MemoryStore._reset()


@pytest.fixture
def make_llm():
    """Build a ScriptedLLM: ``llm = make_llm('{"tool": ...}', ...)``."""
    return ScriptedLLM


@pytest.fixture
def guwahati_jobs() -> list[JobListing]:
    return [
        JobListing(
            id=1,
            title="Mathematics Teacher",
            organization="Cotton Collegiate Government HS School",
            location="Guwahati, Kamrup",
            requirements="B.Ed, TET qualified",
            salary="Rs 35,000 per month",
            applicationDeadline="2025-04-15T00:00:00Z",
            jobType="Full-time",
            category="Government",
            tags=["Mathematics", "Secondary"],
        ),
        JobListing(
            id=2,
            title="English Teacher",
            organization="Jorhat Public School",
            location="Jorhat",
            jobType="Full-time",
            category="Private",
            tags=["English"],
        ),
    ]


@pytest.fixture
def jobs(guwahati_jobs: list[JobListing]) -> FakeJobRepository:
    return FakeJobRepository(guwahati_jobs)


@pytest.fixture
def documents() -> FakeDocumentRepository:
    return FakeDocumentRepository(
        {"doc-1": "Priya Das\nB.Ed, CTET\nMathematics teacher, 4 years, Guwahati"}
    )


@pytest.fixture
def empty_jobs() -> FakeJobRepository:
    return FakeJobRepository([])
