"""Raw text of uploaded resumes and cover letters."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from aguwai.config import settings

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """The portal has no document with the requested ID."""


class DocumentRepository(Protocol):
    async def get_text(self, document_id: str) -> str: ...


class PortalDocumentRepository:
    """Fetches already-extracted document text from the job portal."""

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

    async def get_text(self, document_id: str) -> str:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"

        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
            transport=self._transport,
        ) as client:
            resp = await client.get(f"/api/documents/{document_id}/text")

        if resp.status_code == 404:
            raise DocumentNotFoundError(document_id)
        resp.raise_for_status()
        text = resp.json().get("text", "")
        logger.debug("Fetched document %s (%d chars)", document_id, len(text))
        return text
