"""Webhook body rendering helpers.

Keeping rendering here prevents drift between delivery paths and keeps the
bodies byte-identical for identical messages.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from core.models import Message

_PLACEHOLDER = re.compile(r"\$(title|message)")


def escape_value(value: str) -> str:
    """Turn CR and LF into their two-character escapes for one-line payloads."""

    return value.replace("\r", "\\r").replace("\n", "\\n")


def _header_safe(value: str) -> str:
    # Header values go out as ASCII; other characters are percent-encoded.
    return "".join(char if ord(char) < 128 else quote(char, safe="") for char in value)


def _substitute(template: str, values: dict) -> str:
    return _PLACEHOLDER.sub(lambda match: values[match.group(1)], template)


def render_body(template: str, message: Message) -> str:
    """Substitute ``$title`` and ``$message`` into the template.

    Substitution is a single pass, so a title containing ``$message`` is sent
    as-is. Only the substituted values are escaped; the template text is left
    exactly as configured.
    """

    values = {
        "title": escape_value(message.title),
        "message": escape_value(message.body),
    }
    return _substitute(template, values)


def render_headers(headers: dict, message: Message) -> dict:
    """Render placeholders in header values.

    Substituted values are escaped like the body and then percent-encoded
    outside ASCII, so a non-ASCII title cannot make the request unsendable.
    """

    values = {
        "title": _header_safe(escape_value(message.title)),
        "message": _header_safe(escape_value(message.body)),
    }
    return {key: _substitute(value, values) for key, value in headers.items()}
