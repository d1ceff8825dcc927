"""Portal collaborators consumed by the assistant's tools."""

from aguwai.repositories.documents import (
    DocumentNotFoundError,
    DocumentRepository,
    PortalDocumentRepository,
)
from aguwai.repositories.jobs import JobFilter, JobListing, JobRepository, PortalJobRepository

__all__ = [
    "DocumentNotFoundError",
    "DocumentRepository",
    "JobFilter",
    "JobListing",
    "JobRepository",
    "PortalDocumentRepository",
    "PortalJobRepository",
]
