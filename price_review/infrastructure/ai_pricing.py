"""Client for AI price suggestions via the OpenAI Responses API."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

import httpx

from price_review.core.numbers import format_number, to_str
from price_review.core.prompt import PRICE_SCHEMA
from price_review.core.schema import PriceSuggestion
from price_review.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

_WRAPPER_KEYS = ("response", "data", "openai")
_PAYLOAD_KEYS = ("output", "output_text", "choices")


class AIPricingError(RuntimeError):
    """Raised when no usable price suggestion could be obtained."""


def unwrap_response(body: Any) -> Any:
    """Proxies sometimes nest the API answer one level deep."""

    if not isinstance(body, Mapping):
        return body
    for key in _WRAPPER_KEYS:
        inner = body.get(key)
        if isinstance(inner, Mapping) and any(inner.get(name) for name in _PAYLOAD_KEYS):
            return inner
    return body


def ensure_completed(body: Any) -> None:
    response = unwrap_response(body)
    if not isinstance(response, Mapping) or not response:
        raise AIPricingError("No response received.")
    if response.get("error"):
        error = response["error"]
        message = error.get("message") if isinstance(error, Mapping) else None
        raise AIPricingError(message or json.dumps(error))
    status = response.get("status")
    if status and status != "completed":
        details = response.get("incomplete_details")
        suffix = f" Details: {json.dumps(details)}" if details else ""
        raise AIPricingError(f"Response not completed (status={status}).{suffix}")


def extract_assistant_text(body: Any) -> str:
    response = unwrap_response(body)
    if not isinstance(response, Mapping):
        return ""

    output_text = response.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()

    chunks: list[str] = []
    for item in response.get("output") or []:
        if not isinstance(item, Mapping):
            continue
        contents = item.get("content") if isinstance(item.get("content"), list) else []
        for content in contents:
            if not isinstance(content, Mapping):
                continue
            if item.get("type") == "message" and content.get("type") not in {"output_text", "text", "refusal"}:
                continue
            for key in ("text", "refusal"):
                if isinstance(content.get(key), str):
                    chunks.append(content[key])
    joined = "\n".join(chunks).strip()
    if joined:
        return joined

    choices = response.get("choices") or []
    if choices and isinstance(choices[0], Mapping):
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, Mapping) else None
        if isinstance(content, str) and content.strip():
            return content.strip()
    return ""


def parse_json_text(text: str) -> dict[str, Any]:
    stripped = (text or "").strip()
    if not stripped:
        raise AIPricingError("Empty answer (no output_text found).")
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", stripped, flags=re.DOTALL)
        try:
            parsed = json.loads(match.group(0)) if match else None
        except json.JSONDecodeError:
            parsed = None
    if not isinstance(parsed, dict):
        raise AIPricingError("Answer is not valid JSON.")
    return parsed


class AIPricingClient:
    def __init__(
        self,
        settings: Settings,
        *,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    def _build_request(self, prompt: str) -> tuple[str, dict[str, Any], dict[str, str]]:
        body = {
            "model": self._settings.openai_model,
            "input": prompt,
            "reasoning": {"effort": "low"},
            "max_output_tokens": self._settings.openai_max_output_tokens,
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "ki_preis_result",
                    "strict": True,
                    "schema": PRICE_SCHEMA,
                }
            },
            "store": False,
        }
        if self._settings.openai_proxy_url:
            return self._settings.openai_proxy_url, body, {}
        if not self._settings.openai_api_key:
            raise AIPricingError("No API key configured. Set OPENAI_API_KEY or OPENAI_PROXY_URL.")
        return self._settings.openai_api_url, body, {"Authorization": f"Bearer {self._settings.openai_api_key}"}

    async def _post(self, prompt: str) -> Any:
        url, body, headers = self._build_request(prompt)
        response = await self._client.post(url, json=body, headers=headers)
        try:
            payload = response.json() if response.content else None
        except json.JSONDecodeError:
            payload = None

        if not response.is_success:
            error = payload.get("error") if isinstance(payload, Mapping) else None
            message = error.get("message") if isinstance(error, Mapping) else error
            raise AIPricingError(to_str(message) or response.text or f"HTTP {response.status_code}")
        if payload is None:
            raise AIPricingError("Answer is not JSON. RAW: " + response.text[:400])
        return payload

    async def suggest(self, prompt: str, unit_hint: str = "") -> PriceSuggestion:
        try:
            body = await self._post(prompt)
        except httpx.HTTPError as exc:
            raise AIPricingError(str(exc) or exc.__class__.__name__) from exc
        ensure_completed(body)
        result = parse_json_text(extract_assistant_text(body))

        label = f" {unit_hint}" if unit_hint else ""

        def render(value: Any) -> str:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return f"{format_number(value)}{label}"
            return to_str(value).strip()

        logger.info("AI price suggestion received")
        return PriceSuggestion(
            comparable_price=render(result.get("preis_comp")),
            ai_price=render(result.get("preis_ai")),
            rationale=to_str(result.get("begruendung")).strip(),
            unit_hint=unit_hint,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_client: AIPricingClient | None = None


def get_ai_pricing_client() -> AIPricingClient:
    global _client
    if _client is None:
        _client = AIPricingClient(get_settings())
    return _client


def configure_ai_pricing_client(client: AIPricingClient | None) -> None:
    global _client
    _client = client


__all__ = [
    "AIPricingClient",
    "AIPricingError",
    "configure_ai_pricing_client",
    "ensure_completed",
    "extract_assistant_text",
    "get_ai_pricing_client",
    "parse_json_text",
    "unwrap_response",
]
