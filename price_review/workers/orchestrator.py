"""Remote pricing job orchestration.

A job runs as a single asyncio task::

    IDLE -> STARTING -> POLLING -> FETCHING -> DONE
                \\          \\           \\-> ERROR

Status is polled on a fixed interval until the remote side reports
completion.  Each run owns a cancellation token that is checked after every
suspension point, so a cancelled run never applies a response it was still
waiting for and never schedules another poll.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Iterable
from urllib.parse import quote, urljoin, urlparse

import httpx

from price_review.application import ReviewService, get_review_service
from price_review.core.envelope import as_records, first_item
from price_review.core.fields import resolve
from price_review.core.numbers import parse_number_loose, to_str
from price_review.core.schema import JobSnapshot
from price_review.core.settings import Settings, get_settings
from price_review.domain import JobRecord, JobState
from price_review.infrastructure import WebhookClient, WebhookError, get_webhook_client

logger = logging.getLogger(__name__)

JOB_ID_KEYS = ("jobId", "id", "executionId")
STATUS_URL_KEYS = ("statusUrl", "status_url", "statusURL")
RESULT_URL_KEYS = ("resultUrl", "result_url", "resultURL")
STATUS_TEXT_KEYS = ("StatusObj", "status")
COMPLETED_STATUSES = {"done", "finished"}


class JobAlreadyRunning(RuntimeError):
    """Raised when ``start`` is called while a job is still active."""


class JobProtocolError(RuntimeError):
    """Raised when the remote side answers with an unusable payload."""


@dataclass(slots=True)
class CancelToken:
    cancelled: bool = False


def fallback_url(template: str, job_id: str) -> str:
    if "{job_id}" in template:
        return template.replace("{job_id}", quote(job_id, safe=""))
    return f"{template}{job_id}"


def normalise_job_url(
    raw: Any,
    job_id: str,
    fallback_template: str,
    markers: Iterable[str],
    *,
    base: str | None = None,
) -> str:
    """Return a usable poll address, distrusting what the start call returned."""

    url = to_str(raw).strip()
    if not url or any(marker and marker in url for marker in markers):
        return fallback_url(fallback_template, job_id)
    if base and not urlparse(url).scheme:
        return urljoin(base, url)
    return url


def parse_progress(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return parse_number_loose(to_str(value).strip().rstrip("%"))


def is_complete(status_text: str | None, progress: float | None) -> bool:
    if status_text and status_text.strip().lower() in COMPLETED_STATUSES:
        return True
    return progress is not None and progress >= 100


class JobOrchestrator:
    def __init__(
        self,
        client: WebhookClient,
        service: ReviewService,
        settings: Settings,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._service = service
        self._settings = settings
        self._sleep = sleep
        self._job = JobRecord()
        self._task: asyncio.Task[None] | None = None
        self._token: CancelToken | None = None

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> JobState:
        return self._job.state

    def snapshot(self) -> JobSnapshot:
        data = asdict(self._job)
        data["state"] = self._job.state.value
        return JobSnapshot(**data)

    async def start(self) -> JobSnapshot:
        if self._job.state.is_active:
            raise JobAlreadyRunning("A pricing job is already running")

        token = CancelToken()
        self._token = token
        self._job = JobRecord(state=JobState.STARTING)
        self._task = asyncio.create_task(self._run(token))
        logger.info("Pricing job starting")
        return self.snapshot()

    async def wait(self) -> JobSnapshot:
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self.snapshot()

    async def cancel(self) -> JobSnapshot:
        """Abort the running job (if any) and reset the job state."""

        token, task = self._token, self._task
        if token is not None:
            token.cancelled = True
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
            logger.info("Pricing job %s cancelled", self._job.job_id or "(pending)")
        self._task = None
        self._token = None
        self._job = JobRecord()
        return self.snapshot()

    async def aclose(self) -> None:
        await self.cancel()
        await self._client.aclose()

    # ------------------------------------------------------------------
    # state machine
    # ------------------------------------------------------------------
    async def _run(self, token: CancelToken) -> None:
        try:
            await self._execute(token)
        except WebhookError as exc:
            self._fail(token, str(exc))
        except JobProtocolError as exc:
            self._fail(token, str(exc))
        except httpx.HTTPError as exc:
            self._fail(token, f"Network error: {exc or exc.__class__.__name__}")
        except ValueError as exc:
            self._fail(token, f"Invalid response: {exc}")
        except Exception as exc:  # pragma: no cover
            logger.exception("Pricing job crashed")
            self._fail(token, f"Unexpected error: {exc}")

    def _fail(self, token: CancelToken, message: str) -> None:
        if token.cancelled:
            return
        logger.warning("Pricing job %s failed in %s: %s", self._job.job_id, self._job.state.value, message)
        self._job.state = JobState.ERROR
        self._job.message = message

    async def _execute(self, token: CancelToken) -> None:
        start_url, body = await self._client.start_job()
        if token.cancelled:
            return

        job_id = to_str(resolve(body, JOB_ID_KEYS)).strip()
        if not job_id:
            raise JobProtocolError("Start response did not include a job identifier (jobId, id or executionId)")

        markers = self._settings.malformed_markers
        self._job.job_id = job_id
        self._job.status_url = normalise_job_url(
            resolve(body, STATUS_URL_KEYS), job_id, self._settings.job_status_fallback, markers, base=start_url
        )
        self._job.result_url = normalise_job_url(
            resolve(body, RESULT_URL_KEYS), job_id, self._settings.job_result_fallback, markers, base=start_url
        )
        self._job.state = JobState.POLLING
        logger.info("Pricing job %s started, polling %s", job_id, self._job.status_url)

        while True:
            status_body = await self._client.get_json(self._job.status_url)
            if token.cancelled:
                return

            status = first_item(status_body)
            status_text = to_str(resolve(status, STATUS_TEXT_KEYS)).strip() or None
            progress = parse_progress(status.get("progress"))
            self._job.status_text = status_text
            self._job.progress = progress
            if is_complete(status_text, progress):
                break

            await self._sleep(self._settings.poll_interval)
            if token.cancelled:
                return

        self._job.state = JobState.FETCHING
        result_body = await self._client.get_json(self._job.result_url)
        if token.cancelled:
            return

        records = as_records(result_body)
        self._service.apply_job_result(records)
        self._job.record_count = len(records)
        self._job.state = JobState.DONE
        logger.info("Pricing job %s done with %d records", job_id, len(records))


_orchestrator: JobOrchestrator | None = None


def get_job_orchestrator() -> JobOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        _orchestrator = JobOrchestrator(get_webhook_client(), get_review_service(), settings)
    return _orchestrator


def configure_job_orchestrator(orchestrator: JobOrchestrator | None) -> None:
    """Install the orchestrator used by the API (``None`` rebuilds it lazily)."""

    global _orchestrator
    _orchestrator = orchestrator


async def shutdown_job_orchestrator() -> None:
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.aclose()
        _orchestrator = None
