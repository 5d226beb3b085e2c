"""Application entry point for the hookrelay bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from client import build_stream_url, test_connection
from core.config import RelayConfig, require_connection_settings
from core.errors import RelayError
from core.rules_engine import describe_rules
from relay import WebhookRelay

NAME = "HOOKRELAY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict, always: list[str]) -> list[str]:
    """The client token is always masked; env-backed secrets on request."""

    values = [value for value in always if value]
    redact_cfg = config.get("redact", {}) if config else {}
    if redact_cfg.get("enabled", False):
        for name in redact_cfg.get("patterns", []):
            value = os.getenv(name)
            if value:
                values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict, debug: bool, secrets: list[str]) -> None:
    config = config or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = "DEBUG" if debug else str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config, secrets), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/hookrelay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # Webhook bodies are logged by us at DEBUG; the client's own traces are noise.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("websockets").setLevel(max(level, logging.WARNING))


def _install_interrupt(interrupt: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, interrupt.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers.
            logging.getLogger(__name__).debug("Signal %s not wired to the relay", signum)


async def _serve(config: RelayConfig) -> list[Exception]:
    """Run one enable/disable cycle, ending on SIGINT/SIGTERM or a dropped stream.

    Returns the errors that ended the session; empty after a clean shutdown.
    """

    logger = logging.getLogger(__name__)
    interrupt = asyncio.Event()
    _install_interrupt(interrupt)
    errors: list[Exception] = []

    def _on_error(exc: Exception) -> None:
        logger.error("Stream session ended: %s", exc)
        errors.append(exc)

    relay = WebhookRelay(config, on_error=_on_error)
    await relay.enable(interrupt)
    logger.info("Listening for incoming messages...")
    await relay.wait_closed()
    await relay.disable()
    return errors


def _load(config_path: Optional[str]) -> tuple[dict, RelayConfig]:
    raw, config = settings.load_settings(config_path)
    _configure_logging(raw.get("logging", {}), config.debug, [config.client_token])
    return raw, config


def _run(config_path: Optional[str]) -> int:
    _print_banner()
    _, config = _load(config_path)
    logger = logging.getLogger(__name__)
    logger.info("Starting hookrelay")
    try:
        errors = asyncio.run(_serve(config))
    except RelayError as exc:
        logger.error("Relay could not start: %s", exc)
        return 1
    return 1 if errors else 0


def _test_connection(config_path: Optional[str], url: Optional[str]) -> int:
    logger = logging.getLogger(__name__)
    if not url:
        _, config = _load(config_path)
        require_connection_settings(config)
        url = build_stream_url(config.host_server, config.client_token)
    else:
        _configure_logging({}, False, [])
    try:
        asyncio.run(test_connection(url))
    except RelayError as exc:
        logger.error("%s", exc)
        print("Connection failed.")
        return 1
    print("Connection OK.")
    return 0


def _check_config(config_path: Optional[str]) -> int:
    _, config = _load(config_path)
    print(f"host_server: {config.host_server or '<missing>'}")
    print(f"client_token: {'set' if config.client_token else '<missing>'}")
    print(f"web_hooks: {len(config.web_hooks)}")
    for index, target in enumerate(config.web_hooks):
        if target.rules:
            counts = ", ".join(f"{name}={count}" for name, count in sorted(describe_rules(target.rules).items()))
            mode = f"rules ({counts})"
        else:
            mode = f"tags ({', '.join(target.tags) or 'none'})"
        print(f"  #{index} {target.method or 'POST'} {target.url or '<missing url>'} - {mode}")
    try:
        require_connection_settings(config)
    except RelayError as exc:
        print(f"Not ready: {exc}")
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="hookrelay")
    parser.add_argument("--config", help="Path to config.json (default: HOOKRELAY_CONFIG or ./config.json)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start forwarding stream messages to webhooks")
    test_parser = subparsers.add_parser("test-connection", help="Dial the stream once and exit")
    test_parser.add_argument("url", nargs="?", help="Websocket url (default: the configured stream)")
    subparsers.add_parser("check-config", help="Validate the config and print a summary")

    args = parser.parse_args(argv)
    try:
        if args.command == "test-connection":
            return _test_connection(args.config, args.url)
        if args.command == "check-config":
            return _check_config(args.config)
        return _run(args.config)
    except RelayError as exc:
        parser.exit(2, f"hookrelay: {exc}\n")


if __name__ == "__main__":
    raise SystemExit(main())
