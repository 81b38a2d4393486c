"""Runtime configuration.

Defaults live in ``price_review/config/endpoints.yaml``.  ``PRICE_REVIEW_CONFIG``
points at an alternative file and individual environment variables override
single values, which keeps deployment specific webhook ids out of the code.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "endpoints.yaml"


@dataclass(frozen=True)
class Settings:
    knowledge_base_url: str = ""
    bill_of_quantities_url: str = ""
    x84_url: str = ""
    job_start_url: str = ""
    job_status_fallback: str = ""
    job_result_fallback: str = ""
    poll_interval_ms: int = 1200
    malformed_markers: tuple[str, ...] = ()
    candidate_ids: tuple[str, ...] = ("Rank1", "Rank2", "Rank3")
    openai_api_url: str = "https://api.openai.com/v1/responses"
    openai_model: str = "gpt-5-mini"
    openai_api_key: str = ""
    openai_proxy_url: str = ""
    openai_max_output_tokens: int = 2050
    cors_origins: tuple[str, ...] = field(default_factory=tuple)

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def _env(name: str, default: Any) -> Any:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _split_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


def load_settings(path: Path | None = None) -> Settings:
    config_path = path or Path(os.getenv("PRICE_REVIEW_CONFIG") or DEFAULT_CONFIG_PATH)
    data = _load_yaml(config_path)
    webhooks = data.get("webhooks") or {}
    jobs = data.get("jobs") or {}
    ai = data.get("ai_pricing") or {}

    return Settings(
        knowledge_base_url=_env("WEBHOOK_KNOWLEDGE_BASE_URL", webhooks.get("knowledge_base", "")),
        bill_of_quantities_url=_env("WEBHOOK_LV_URL", webhooks.get("bill_of_quantities", "")),
        x84_url=_env("WEBHOOK_X84_URL", webhooks.get("x84", "")),
        job_start_url=_env("JOB_START_URL", jobs.get("start", "")),
        job_status_fallback=_env("JOB_STATUS_FALLBACK", jobs.get("status_fallback", "")),
        job_result_fallback=_env("JOB_RESULT_FALLBACK", jobs.get("result_fallback", "")),
        poll_interval_ms=int(_env("JOB_POLL_INTERVAL_MS", jobs.get("poll_interval_ms", 1200))),
        malformed_markers=_split_env("JOB_MALFORMED_MARKERS", tuple(jobs.get("malformed_markers") or ())),
        candidate_ids=tuple(data.get("candidates") or ("Rank1", "Rank2", "Rank3")),
        openai_api_url=_env("OPENAI_API_URL", ai.get("api_url", "https://api.openai.com/v1/responses")),
        openai_model=_env("OPENAI_MODEL", ai.get("model", "gpt-5-mini")),
        openai_api_key=_env("OPENAI_API_KEY", ""),
        openai_proxy_url=_env("OPENAI_PROXY_URL", ""),
        openai_max_output_tokens=int(ai.get("max_output_tokens", 2050)),
        cors_origins=_split_env("API_CORS_ORIGINS", ("http://localhost:3000", "http://127.0.0.1:3000")),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


def reset_settings() -> None:
    """Drop the cached settings (used in tests after patching the environment)."""

    get_settings.cache_clear()
