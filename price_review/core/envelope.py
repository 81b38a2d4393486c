"""Response envelope handling for the remote job endpoints.

Workflow endpoints answer either with the bare payload or with a one-level
``{"data": ...}`` wrapper depending on how the responding node is configured.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Union


@dataclass(frozen=True, slots=True)
class Unwrapped:
    payload: Any


@dataclass(frozen=True, slots=True)
class Wrapped:
    payload: Any


Envelope = Union[Unwrapped, Wrapped]


def classify(body: Any) -> Envelope:
    if isinstance(body, Mapping) and isinstance(body.get("data"), (list, Mapping)):
        return Wrapped(body["data"])
    return Unwrapped(body)


def unwrap(body: Any) -> Any:
    return classify(body).payload


def first_item(body: Any) -> Mapping[str, Any]:
    """Status object from a (possibly wrapped) status response."""

    payload = unwrap(body)
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    return payload if isinstance(payload, Mapping) else {}


def as_records(body: Any) -> list[Any]:
    payload = unwrap(body)
    if isinstance(payload, list):
        return list(payload)
    if isinstance(payload, Mapping):
        return [dict(payload)]
    return []


def parse_object(raw: Any) -> Mapping[str, Any]:
    """Accept an object or a JSON string containing one."""

    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        raw = json.loads(text) if text.strip() else {}
        if isinstance(raw, str):
            raw = json.loads(raw)
    if isinstance(raw, list) and raw and isinstance(raw[0], Mapping):
        raw = raw[0]
    if not isinstance(raw, Mapping):
        raise ValueError("response is not a JSON object")
    return raw


__all__ = ["Envelope", "Unwrapped", "Wrapped", "as_records", "classify", "first_item", "parse_object", "unwrap"]
