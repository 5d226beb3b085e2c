"""Exception hierarchy shared by the core and the adapters."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for every error raised by hookrelay."""


class ConfigurationError(RelayError):
    """A required field is missing or a configured value is invalid."""


class StreamConnectionError(RelayError):
    """The stream handshake failed or the live connection broke."""


class DecodeError(RelayError):
    """An inbound frame could not be decoded into a message."""


class DispatchError(RelayError):
    """A webhook is misconfigured or its HTTP call failed."""
