"""Job search tool: finds teaching positions in the portal's listings."""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import Field

from aguwai.config import settings
from aguwai.memory.store import MemoryStoreError
from aguwai.repositories.jobs import JobFilter, JobListing
from aguwai.tools.base import ToolContext, ToolParams, ToolResult
from aguwai.tools.registry import registry

logger = logging.getLogger(__name__)

NO_JOBS_FOUND = "No matching jobs found. Try broadening your search criteria."
SEARCH_FAILED = "There was an error searching for jobs. Please try again."

# Keyword in the requested subject -> listing tag.
SUBJECT_TAGS: dict[str, str] = {
    "math": "Mathematics",
    "science": "Science",
    "english": "English",
    "hindi": "Hindi",
    "assamese": "Assamese",
}

SCHOOL_TYPE_CATEGORIES: dict[str, str] = {
    "government": "Government",
    "private": "Private",
}


class SearchJobsParams(ToolParams):
    location: str | None = Field(default=None, description="Town or district, e.g. 'Guwahati'")
    subject: str | None = Field(default=None, description="Subject taught, e.g. 'math'")
    job_type: str | None = Field(default=None, description="e.g. 'Full-time', 'Contract'")
    school_type: str | None = Field(default=None, description="'government' or 'private'")


def build_job_filter(
    location: str | None = None,
    subject: str | None = None,
    job_type: str | None = None,
    school_type: str | None = None,
) -> JobFilter:
    """Translate the tool's search vocabulary into repository criteria."""
    tags: list[str] = []
    if subject:
        lowered = subject.lower()
        tags = [tag for keyword, tag in SUBJECT_TAGS.items() if keyword in lowered][:1]

    category = SCHOOL_TYPE_CATEGORIES.get((school_type or "").strip().lower())
    return JobFilter(
        location=location.strip() if location and location.strip() else None,
        category=category,
        job_type=job_type,
        tags=tags,
    )


def format_job(job: JobListing) -> str:
    deadline = job.application_deadline[:10] if job.application_deadline else "Not specified"
    return "\n".join([
        f"Position: {job.title}",
        f"Organization: {job.organization}",
        f"Location: {job.location}",
        f"Salary: {job.salary or 'Not specified'}",
        f"Requirements: {job.requirements or 'Not specified'}",
        f"Application Deadline: {deadline}",
    ])


@registry.tool(
    name="search_jobs",
    description=(
        "Search current teaching job listings. All inputs are optional and "
        "narrow the search: location, subject, jobType, schoolType "
        "('government' or 'private')."
    ),
    params_model=SearchJobsParams,
)
async def search_jobs(
    ctx: ToolContext,
    location: str | None = None,
    subject: str | None = None,
    job_type: str | None = None,
    school_type: str | None = None,
) -> ToolResult:
    if ctx.jobs is None:
        return ToolResult(observation=SEARCH_FAILED, error="No job repository configured")

    job_filter = build_job_filter(location, subject, job_type, school_type)
    try:
        jobs = await asyncio.wait_for(
            ctx.jobs.query(job_filter), settings.repository_timeout_seconds
        )
    except (httpx.HTTPError, TimeoutError, ValueError) as exc:
        logger.warning("Job search failed: %s", exc)
        return ToolResult(observation=SEARCH_FAILED, error=f"{type(exc).__name__}: {exc}")

    query = {
        key: value
        for key, value in {
            "location": location,
            "subject": subject,
            "jobType": job_type,
            "schoolType": school_type,
        }.items()
        if value
    }
    await _record_search(ctx, query, jobs)

    if not jobs:
        return ToolResult(observation=NO_JOBS_FOUND, data={"count": 0, "job_ids": []})

    observation = "\n---\n".join(format_job(job) for job in jobs)
    return ToolResult(
        observation=observation,
        data={"count": len(jobs), "job_ids": [job.id for job in jobs]},
    )


async def _record_search(ctx: ToolContext, query: dict, jobs: list[JobListing]) -> None:
    if ctx.store is None or ctx.user_id is None:
        return
    try:
        await ctx.store.save_search_history(ctx.user_id, query, [job.id for job in jobs])
    except MemoryStoreError:
        logger.exception("Could not record search history for user %s", ctx.user_id)
