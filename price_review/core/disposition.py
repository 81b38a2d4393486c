from __future__ import annotations

import re
from urllib.parse import unquote

DEFAULT_X84_FILENAME = "Anfrage1.X84"

_EXTENDED = re.compile(r"filename\*\s*=\s*([^;]+)", re.IGNORECASE)
_PLAIN = re.compile(r"filename\s*=\s*([^;]+)", re.IGNORECASE)
_QUOTED = re.compile(r'^"(.*)"$')
_PATH_SEPARATORS = re.compile(r"[\\/]")


def _basename(value: str, fallback: str) -> str:
    return _PATH_SEPARATORS.split(value)[-1] or fallback


def _decode(value: str) -> str:
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def parse_download_filename(header: str | None, fallback: str = DEFAULT_X84_FILENAME) -> str:
    """Extract the suggested filename from a ``Content-Disposition`` header.

    Supports the RFC 5987 ``filename*=UTF-8''name`` form and the plain
    ``filename="name"`` form.  Directory components are discarded.
    """

    if not header:
        return fallback

    match = _EXTENDED.search(header)
    if match:
        value = _QUOTED.sub(r"\1", match.group(1).strip())
        parts = value.split("''")
        if len(parts) == 2:
            value = parts[1]
        return _basename(_decode(value), fallback)

    match = _PLAIN.search(header)
    if match:
        value = _QUOTED.sub(r"\1", match.group(1).strip())
        return _basename(value, fallback)

    return fallback
