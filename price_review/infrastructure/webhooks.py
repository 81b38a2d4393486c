"""HTTP client for the workflow webhooks behind the review service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from price_review.core.disposition import DEFAULT_X84_FILENAME, parse_download_filename
from price_review.core.envelope import parse_object
from price_review.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

FilePart = tuple[str, bytes, str | None]


class WebhookError(RuntimeError):
    """Raised when a webhook answers with a non-success status or unusable body."""


@dataclass(slots=True)
class GeneratedFile:
    filename: str
    content: bytes
    media_type: str


def failure_message(response: httpx.Response, label: str | None = None) -> str:
    body = response.text.strip()
    detail = body or f"HTTP {response.status_code}"
    return f"{label}: {detail}" if label else detail


class WebhookClient:
    """Async client for project upload, X84 generation and pricing jobs."""

    def __init__(
        self,
        settings: Settings,
        *,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _multipart(files: Sequence[FilePart]) -> list[tuple[str, tuple[str, bytes, str]]]:
        return [
            ("data", (name, content, content_type or "application/octet-stream"))
            for name, content, content_type in files
        ]

    async def _upload_group(self, url: str, files: Sequence[FilePart], label: str) -> None:
        response = await self._client.post(url, files=self._multipart(files))
        if not response.is_success:
            raise WebhookError(failure_message(response, label))
        logger.info("%s: uploaded %d file(s)", label, len(files))

    # ------------------------------------------------------------------
    # project upload & exchange file
    # ------------------------------------------------------------------
    async def upload_project(
        self,
        knowledge_base: Sequence[FilePart],
        bill_of_quantities: Sequence[FilePart],
    ) -> None:
        """Send both file groups, knowledge base first; the second is skipped if the first fails."""

        await self._upload_group(self._settings.knowledge_base_url, knowledge_base, "Knowledge base upload failed")
        await self._upload_group(
            self._settings.bill_of_quantities_url, bill_of_quantities, "Bill of quantities upload failed"
        )

    async def generate_x84(self, dataset: bytes, filename: str | None) -> GeneratedFile:
        files = [("data", (filename or "data.json", dataset, "application/json"))]
        response = await self._client.post(self._settings.x84_url, files=files)
        if not response.is_success:
            raise WebhookError(failure_message(response, "X84 generation failed"))

        content_type = response.headers.get("content-type", "").lower()
        if "application/json" in content_type:
            raise WebhookError(f"Response was JSON, no file returned: {response.text[:300]}")

        name = parse_download_filename(response.headers.get("content-disposition"), DEFAULT_X84_FILENAME)
        logger.info("X84 generated: %s (%d bytes)", name, len(response.content))
        return GeneratedFile(
            filename=name,
            content=response.content,
            media_type=content_type or "application/octet-stream",
        )

    # ------------------------------------------------------------------
    # pricing jobs
    # ------------------------------------------------------------------
    async def start_job(self) -> tuple[str, dict[str, Any]]:
        """Trigger a job with an empty body and return ``(start_url, response object)``."""

        url = self._settings.job_start_url
        response = await self._client.post(url)
        if not response.is_success:
            raise WebhookError(failure_message(response, "Job start failed"))
        return url, dict(parse_object(response.text))

    async def get_json(self, url: str) -> Any:
        response = await self._client.get(url)
        if not response.is_success:
            raise WebhookError(failure_message(response))
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_client: WebhookClient | None = None


def get_webhook_client() -> WebhookClient:
    global _client
    if _client is None:
        _client = WebhookClient(get_settings())
    return _client


def configure_webhook_client(client: WebhookClient | None) -> None:
    """Install the webhook client used by the API (``None`` rebuilds it lazily)."""

    global _client
    _client = client


__all__ = [
    "FilePart",
    "GeneratedFile",
    "WebhookClient",
    "WebhookError",
    "configure_webhook_client",
    "failure_message",
    "get_webhook_client",
]
