"""Custom exception hierarchy for cyphalmon."""

from __future__ import annotations

from typing import Any


class CyphalMonError(Exception):
    """Base exception for all cyphalmon errors."""


class CyphalMonConfigError(CyphalMonError):
    """Invalid or missing configuration."""


class DecodeError(CyphalMonError):
    """A heartbeat line could not be decoded into a record.

    Non-fatal: the stream skips the line and continues.
    """

    def __init__(self, message: str, *, raw: Any = None) -> None:
        self.raw = raw
        super().__init__(message)


class AcquisitionError(CyphalMonError):
    """The heartbeat acquisition process could not be started."""

    def __init__(self, message: str, *, interface: str = "") -> None:
        self.interface = interface
        super().__init__(message)


class ProtocolViolation(CyphalMonError):
    """A sync-channel message does not have the expected shape.

    The view rejects the message as a whole and keeps its last good render.
    """
