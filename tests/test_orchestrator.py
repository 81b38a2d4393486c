from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from price_review.application import ReviewService
from price_review.core.settings import Settings
from price_review.domain import JobState
from price_review.infrastructure import InMemorySessionRepository, WebhookClient
from price_review.workers.orchestrator import (
    JobAlreadyRunning,
    JobOrchestrator,
    fallback_url,
    is_complete,
    normalise_job_url,
    parse_progress,
)

START_URL = "http://n8n.local/webhook/pricing-job/start"
MARKERS = ("{{", "}}", "undefined", "[object Object]", "/webhook-waiting/")

SETTINGS = Settings(
    job_start_url=START_URL,
    job_status_fallback="http://n8n.local/webhook/pricing-job/status/{job_id}",
    job_result_fallback="http://n8n.local/webhook/pricing-job/result/{job_id}",
    poll_interval_ms=1200,
    malformed_markers=MARKERS,
)

RESULT_RECORDS = [
    {"Query": {"query-oz": "01"}, "Rank1": {"rank1-preis": "5"}},
    {"Query": {"query-oz": "02"}, "selectedCandidateKey": "Rank2"},
]


class RemoteJob:
    """Scripted remote workflow used as an httpx mock transport."""

    def __init__(self, start=None, statuses=None, result=None):
        self.start = start if start is not None else {
            "jobId": "J1",
            "statusUrl": "http://n8n.local/webhook/pricing-job/status/J1",
            "resultUrl": "/webhook/pricing-job/result/J1",
        }
        self.statuses = list(statuses or [{"StatusObj": "done"}])
        self.result = result if result is not None else {"data": RESULT_RECORDS}
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(f"{request.method} {request.url}")
        if request.method == "POST":
            if isinstance(self.start, httpx.Response):
                return self.start
            return httpx.Response(200, json=self.start)
        if "/status/" in request.url.path:
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            if isinstance(status, httpx.Response):
                return status
            return httpx.Response(200, json=status)
        if isinstance(self.result, httpx.Response):
            return self.result
        return httpx.Response(200, json=self.result)


class FakeSleep:
    def __init__(self, block: bool = False):
        self.calls: list[float] = []
        self.block = block
        self.entered = asyncio.Event()
        self._release = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        self.entered.set()
        if self.block:
            await self._release.wait()
        else:
            await asyncio.sleep(0)


def _build(remote: RemoteJob, sleep: FakeSleep) -> tuple[JobOrchestrator, ReviewService]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(remote))
    service = ReviewService(InMemorySessionRepository(), ("Rank1", "Rank2", "Rank3"))
    orchestrator = JobOrchestrator(WebhookClient(SETTINGS, http_client=http_client), service, SETTINGS, sleep=sleep)
    return orchestrator, service


def test_fallback_url():
    assert fallback_url("http://host/status/{job_id}", "a b") == "http://host/status/a%20b"
    assert fallback_url("http://host/status/", "J1") == "http://host/status/J1"


def test_normalise_job_url():
    template = "http://host/status/{job_id}"
    assert normalise_job_url("http://host/s/J1", "J1", template, MARKERS) == "http://host/s/J1"
    assert normalise_job_url("", "J1", template, MARKERS) == "http://host/status/J1"
    assert normalise_job_url(None, "J1", template, MARKERS) == "http://host/status/J1"
    assert normalise_job_url("http://host/{{ $json.id }}", "J1", template, MARKERS) == "http://host/status/J1"
    assert normalise_job_url("http://host/webhook-waiting/77", "J1", template, MARKERS) == "http://host/status/J1"
    assert (
        normalise_job_url("/webhook/status/J1", "J1", template, MARKERS, base="http://host:5678/webhook/start")
        == "http://host:5678/webhook/status/J1"
    )


def test_parse_progress_and_completion():
    assert parse_progress(42) == 42.0
    assert parse_progress("50%") == 50.0
    assert parse_progress("12,5") == 12.5
    assert parse_progress(True) is None
    assert parse_progress(None) is None

    assert is_complete("Done", None)
    assert is_complete("finished", 10)
    assert is_complete(None, 100)
    assert not is_complete("running", 42)
    assert not is_complete(None, None)


def test_job_polls_until_done_and_applies_result():
    remote = RemoteJob(statuses=[{"data": [{"progress": "50%"}]}, [{"StatusObj": "done"}]])

    async def scenario():
        sleep = FakeSleep()
        orchestrator, service = _build(remote, sleep)
        snapshot = await orchestrator.start()
        assert snapshot.state == "starting"
        final = await orchestrator.wait()
        return final, service, sleep

    final, service, sleep = asyncio.run(scenario())

    assert final.state == "done"
    assert final.job_id == "J1"
    assert final.status_text == "done"
    assert final.record_count == 2
    assert final.result_url == "http://n8n.local/webhook/pricing-job/result/J1"
    assert sleep.calls == [1.2]
    assert remote.requests[-1] == "GET http://n8n.local/webhook/pricing-job/result/J1"

    session = service.session()
    assert len(session.records) == 2
    assert session.selection == {1: "Rank2"}
    assert session.status == "Job result loaded (2 rows)."


def test_job_keeps_polling_while_in_progress():
    remote = RemoteJob(statuses=[{"progress": 42}])

    async def scenario():
        sleep = FakeSleep()
        orchestrator, service = _build(remote, sleep)
        await orchestrator.start()
        while len(sleep.calls) < 3:
            await asyncio.sleep(0)
        running = orchestrator.snapshot()
        cancelled = await orchestrator.cancel()
        return running, cancelled, service

    running, cancelled, service = asyncio.run(scenario())

    assert running.state == "polling"
    assert running.progress == 42.0
    assert cancelled.state == "idle"
    assert cancelled.job_id is None
    assert service.session().records == ()
    assert not any("/result/" in request for request in remote.requests)


def test_job_start_without_identifier_fails():
    remote = RemoteJob(start={"status": "accepted"})

    async def scenario():
        orchestrator, _ = _build(remote, FakeSleep())
        await orchestrator.start()
        return await orchestrator.wait()

    final = asyncio.run(scenario())
    assert final.state == "error"
    assert "job identifier" in final.message
    assert remote.requests == [f"POST {START_URL}"]


def test_job_accepts_identifier_in_json_string_body():
    remote = RemoteJob(start=httpx.Response(200, text=json.dumps(json.dumps({"executionId": 99}))))

    async def scenario():
        orchestrator, _ = _build(remote, FakeSleep())
        await orchestrator.start()
        return await orchestrator.wait()

    final = asyncio.run(scenario())
    assert final.state == "done"
    assert final.job_id == "99"
    assert final.status_url == "http://n8n.local/webhook/pricing-job/status/99"


def test_malformed_status_url_uses_fallback():
    remote = RemoteJob(
        start={
            "jobId": "J2",
            "statusUrl": "http://n8n.local/webhook-waiting/{{ $execution.id }}",
            "resultUrl": "undefined",
        }
    )

    async def scenario():
        orchestrator, _ = _build(remote, FakeSleep())
        await orchestrator.start()
        return await orchestrator.wait()

    final = asyncio.run(scenario())
    assert final.state == "done"
    assert final.status_url == "http://n8n.local/webhook/pricing-job/status/J2"
    assert "GET http://n8n.local/webhook/pricing-job/status/J2" in remote.requests
    assert "GET http://n8n.local/webhook/pricing-job/result/J2" in remote.requests


def test_status_failure_moves_job_to_error():
    remote = RemoteJob(statuses=[httpx.Response(500, text="workflow exploded")])

    async def scenario():
        orchestrator, service = _build(remote, FakeSleep())
        await orchestrator.start()
        return await orchestrator.wait(), service

    final, service = asyncio.run(scenario())
    assert final.state == "error"
    assert final.message == "workflow exploded"
    assert service.session().records == ()


def test_status_failure_without_body_reports_http_code():
    remote = RemoteJob(statuses=[httpx.Response(503)])

    async def scenario():
        orchestrator, _ = _build(remote, FakeSleep())
        await orchestrator.start()
        return await orchestrator.wait()

    assert asyncio.run(scenario()).message == "HTTP 503"


def test_network_error_moves_job_to_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        service = ReviewService(InMemorySessionRepository(), ("Rank1",))
        orchestrator = JobOrchestrator(
            WebhookClient(SETTINGS, http_client=http_client), service, SETTINGS, sleep=FakeSleep()
        )
        await orchestrator.start()
        return await orchestrator.wait()

    final = asyncio.run(scenario())
    assert final.state == "error"
    assert final.message == "Network error: connection refused"


def test_second_start_is_rejected_while_active():
    remote = RemoteJob(statuses=[{"progress": 10}])

    async def scenario():
        sleep = FakeSleep(block=True)
        orchestrator, _ = _build(remote, sleep)
        await orchestrator.start()
        await sleep.entered.wait()
        with pytest.raises(JobAlreadyRunning):
            await orchestrator.start()
        state = orchestrator.state
        await orchestrator.cancel()
        return state, orchestrator.state

    active, after_cancel = asyncio.run(scenario())
    assert active is JobState.POLLING
    assert after_cancel is JobState.IDLE


def test_cancel_during_wait_never_applies_result():
    remote = RemoteJob(statuses=[{"progress": 10}])

    async def scenario():
        sleep = FakeSleep(block=True)
        orchestrator, service = _build(remote, sleep)
        await orchestrator.start()
        await sleep.entered.wait()
        snapshot = await orchestrator.cancel()
        await asyncio.sleep(0)
        return snapshot, service

    snapshot, service = asyncio.run(scenario())
    assert snapshot.state == "idle"
    assert service.session().records == ()
    assert sum(1 for request in remote.requests if "/status/" in request) == 1


def test_restart_after_completion():
    remote = RemoteJob()

    async def scenario():
        orchestrator, _ = _build(remote, FakeSleep())
        await orchestrator.start()
        await orchestrator.wait()
        await orchestrator.start()
        return await orchestrator.wait()

    assert asyncio.run(scenario()).state == "done"
    assert sum(1 for request in remote.requests if request.startswith("POST")) == 2


def test_running_status_keeps_job_polling():
    remote = RemoteJob(statuses=[{"data": [{"StatusObj": "running", "progress": 42}]}])

    async def scenario():
        sleep = FakeSleep(block=True)
        orchestrator, service = _build(remote, sleep)
        await orchestrator.start()
        await sleep.entered.wait()
        snapshot = orchestrator.snapshot()
        await orchestrator.cancel()
        return snapshot, service

    snapshot, service = asyncio.run(scenario())
    assert snapshot.state == "polling"
    assert snapshot.status_text == "running"
    assert snapshot.progress == 42
    assert service.session().records == ()


def test_result_fetch_failure_moves_job_to_error():
    remote = RemoteJob(
        statuses=[{"data": [{"StatusObj": "running", "progress": 100}]}],
        result=httpx.Response(500, text="result missing"),
    )

    async def scenario():
        orchestrator, service = _build(remote, FakeSleep())
        await orchestrator.start()
        return await orchestrator.wait(), service

    final, service = asyncio.run(scenario())
    assert final.state == "error"
    assert final.message == "result missing"
    assert final.record_count is None
    assert service.session().records == ()
    assert remote.requests[-1] == "GET http://n8n.local/webhook/pricing-job/result/J1"
