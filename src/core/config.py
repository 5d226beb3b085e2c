"""Core configuration dataclasses.

We keep config file loading outside the core, but these dataclasses define the
shape the core expects so adapters and the app layer can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import math
from typing import Any, Mapping, Optional, Tuple

from core.errors import ConfigurationError
from core.rules_engine import Rule, build_rules

LOGGER = logging.getLogger(__name__)

DEFAULT_METHOD = "POST"
DEFAULT_HEADERS = {"Content-Type": "application/json"}
DEFAULT_BODY = '{"msg":"$title\\n$message"}'
DEFAULT_HOST_SERVER = "ws://localhost"
DEFAULT_HEARTBEAT_INTERVAL = 1.0
DEFAULT_RECONNECT_DELAY = 1.0
DEFAULT_WEBHOOK_TIMEOUT = 10.0


@dataclass(frozen=True)
class WebhookTarget:
    """One outbound HTTP destination with its own matching rules.

    ``method``, ``body`` and ``headers`` stay ``None`` when not configured;
    ``resolve_target`` produces the defaulted copy used for delivery.
    """

    url: str
    method: Optional[str] = None
    body: Optional[str] = None
    headers: Optional[Mapping[str, str]] = None
    tags: Tuple[str, ...] = ()
    rules: Tuple[Rule, ...] = ()


@dataclass(frozen=True)
class RelayConfig:
    """Validated relay settings for one enable/disable cycle."""

    client_token: str
    host_server: str
    debug: bool = False
    web_hooks: Tuple[WebhookTarget, ...] = ()
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    webhook_timeout: float = DEFAULT_WEBHOOK_TIMEOUT


def resolve_target(target: WebhookTarget) -> WebhookTarget:
    """Return a copy of ``target`` with method, headers and body defaulted."""

    return replace(
        target,
        method=(target.method or DEFAULT_METHOD).upper(),
        headers=dict(DEFAULT_HEADERS) if target.headers is None else dict(target.headers),
        body=target.body or DEFAULT_BODY,
    )


def _optional_str(entry: Mapping[str, Any], key: str, index: int) -> Optional[str]:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"web_hooks[{index}].{key} must be a string")
    return value


def build_webhook(entry: Mapping[str, Any], index: int = 0) -> WebhookTarget:
    """Build one WebhookTarget from its raw mapping."""

    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"web_hooks[{index}] must be an object")

    url = _optional_str(entry, "url", index) or ""
    if not url:
        # An empty url is tolerated here; delivery reports it per message.
        LOGGER.warning("web_hooks[%s] has no url and will never be delivered", index)

    raw_headers = entry.get("header")
    headers = None
    if raw_headers is not None:
        if not isinstance(raw_headers, Mapping):
            raise ConfigurationError(f"web_hooks[{index}].header must be an object")
        headers = {str(key): str(value) for key, value in raw_headers.items()}

    raw_tags = entry.get("tags") or []
    if isinstance(raw_tags, str):
        raw_tags = [raw_tags]
    elif not isinstance(raw_tags, (list, tuple)):
        raise ConfigurationError(f"web_hooks[{index}].tags must be a list")

    return WebhookTarget(
        url=url,
        method=_optional_str(entry, "method", index),
        body=_optional_str(entry, "body", index),
        headers=headers,
        tags=tuple(str(tag) for tag in raw_tags),
        rules=build_rules(entry.get("rules")),
    )


def _positive_float(raw: Mapping[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{key} must be a number") from exc
    if not math.isfinite(number):
        raise ConfigurationError(f"{key} must be a finite number")
    if number <= 0:
        raise ConfigurationError(f"{key} must be greater than zero")
    return number


def _flag(raw: Mapping[str, Any], key: str) -> bool:
    value = raw.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"{key} must be true or false")
    return value


def build_config(raw: Mapping[str, Any]) -> RelayConfig:
    """Validate a raw config mapping and return the frozen RelayConfig.

    Required fields (``client_token``, ``host_server``) are checked again by
    ``enable()``; here we only reject values of the wrong shape so that a
    partially filled file can still be inspected with ``check-config``.
    """

    if not isinstance(raw, Mapping):
        raise ConfigurationError("Config must be a JSON object")

    raw_hooks = raw.get("web_hooks") or []
    if not isinstance(raw_hooks, list):
        raise ConfigurationError("web_hooks must be a list")

    return RelayConfig(
        client_token=str(raw.get("client_token") or ""),
        host_server=str(raw.get("host_server") or "").rstrip("/"),
        debug=_flag(raw, "debug"),
        web_hooks=tuple(build_webhook(entry, index) for index, entry in enumerate(raw_hooks)),
        heartbeat_interval=_positive_float(raw, "heartbeat_interval", DEFAULT_HEARTBEAT_INTERVAL),
        reconnect_delay=_positive_float(raw, "reconnect_delay", DEFAULT_RECONNECT_DELAY),
        webhook_timeout=_positive_float(raw, "webhook_timeout", DEFAULT_WEBHOOK_TIMEOUT),
    )


def require_connection_settings(config: RelayConfig) -> None:
    """Fail fast when the stream cannot be addressed."""

    if not config.host_server:
        raise ConfigurationError("host_server is required, e.g. ws://localhost")
    if not config.client_token:
        raise ConfigurationError("client_token is required")


def default_config() -> dict:
    """Return the starter config written by hosts for a new relay."""

    return {
        "client_token": "",
        "host_server": DEFAULT_HOST_SERVER,
        "debug": False,
        "web_hooks": [],
    }
