"""Job listing repository — the search tool's view of the portal's listings."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from pydantic import BaseModel, Field

from aguwai.config import settings

logger = logging.getLogger(__name__)

JOBS_PATH = "/api/jobs"


class JobListing(BaseModel):
    id: int | str
    title: str
    organization: str = ""
    location: str = ""
    description: str = ""
    requirements: str | None = None
    salary: str | None = None
    application_deadline: str | None = Field(default=None, alias="applicationDeadline")
    job_type: str | None = Field(default=None, alias="jobType")
    category: str | None = None
    tags: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class JobFilter(BaseModel):
    """Optional criteria, combined with AND. Unset fields do not filter."""

    location: str | None = None
    category: str | None = None
    job_type: str | None = None
    tags: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.location or self.category or self.job_type or self.tags)


def matches(job: JobListing, job_filter: JobFilter) -> bool:
    """Apply *job_filter* to one listing.

    Location is a case-insensitive substring match; category and job type
    are case-insensitive equality; every requested tag must be present.
    """
    if job_filter.location and job_filter.location.lower() not in job.location.lower():
        return False
    if job_filter.category and (job.category or "").lower() != job_filter.category.lower():
        return False
    if job_filter.job_type and (job.job_type or "").lower() != job_filter.job_type.lower():
        return False
    job_tags = {t.lower() for t in job.tags}
    return all(tag.lower() in job_tags for tag in job_filter.tags)


class JobRepository(Protocol):
    async def query(self, job_filter: JobFilter) -> list[JobListing]: ...


class PortalJobRepository:
    """Reads listings from the job portal's HTTP API.

    Location and category are pushed down as query parameters; the
    remaining criteria are applied locally so AND semantics hold whatever
    the portal supports.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        api_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.portal_base_url).rstrip("/")
        self._api_token = api_token if api_token is not None else settings.portal_api_token
        self._timeout = timeout or settings.repository_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def query(self, job_filter: JobFilter) -> list[JobListing]:
        params: dict[str, str] = {}
        if job_filter.location:
            params["location"] = job_filter.location
        if job_filter.category:
            params["category"] = job_filter.category

        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers(),
            transport=self._transport,
        ) as client:
            resp = await client.get(JOBS_PATH, params=params)
            resp.raise_for_status()

        jobs = [JobListing.model_validate(item) for item in resp.json()]
        matched = [job for job in jobs if matches(job, job_filter)]
        logger.info("Job query %s matched %d of %d listing(s)", params, len(matched), len(jobs))
        return matched
