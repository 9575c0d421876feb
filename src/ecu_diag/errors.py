"""
Diagnostic Error Types

Errors raised by protocol servers and the dynamic session.
Transport-level errors live in ecu_diag.transport.base and share
the DiagError base so callers can catch one type.
"""

from dataclasses import dataclass
from typing import Any


class DiagError(Exception):
    """Base class for all diagnostic errors."""


@dataclass
class NotSupportedError(DiagError):
    """The ECU does not speak the probed diagnostic protocol."""

    message: str = "Diagnostic protocol not supported by ECU"

    def __str__(self) -> str:
        return f"NotSupported: {self.message}"


@dataclass
class ECUError(DiagError):
    """ECU replied with a negative response."""

    service_id: int
    nrc: Any  # EcuNRC implementation of the active protocol

    @property
    def code(self) -> int:
        return self.nrc.code

    def is_busy(self) -> bool:
        return self.nrc.is_busy()

    def is_wrong_mode(self) -> bool:
        return self.nrc.is_wrong_mode()

    def is_repeat_request(self) -> bool:
        return self.nrc.is_repeat_request()

    def __str__(self) -> str:
        return (
            f"ECUError[0x{self.nrc.code:02X}]: service 0x{self.service_id:02X} "
            f"rejected ({self.nrc.description()})"
        )


@dataclass
class DecodeError(DiagError):
    """Response could not be parsed."""

    message: str
    raw_response: bytes | None = None

    def __str__(self) -> str:
        return f"DecodeError: {self.message}"


@dataclass
class WrongMessageError(DiagError):
    """Positive response does not belong to the request that was sent."""

    expected_sid: int
    received_sid: int

    def __str__(self) -> str:
        return (
            f"WrongMessage: expected 0x{self.expected_sid:02X}, "
            f"got 0x{self.received_sid:02X}"
        )


@dataclass
class ServerNotRunningError(DiagError):
    """Operation attempted on a closed diagnostic server."""

    message: str = "Diagnostic server is not running"

    def __str__(self) -> str:
        return f"ServerNotRunning: {self.message}"
