"""
Diagnostic Protocol Contract

Types and interfaces shared by the KWP2000 and UDS implementations:
session modes, request classification, keep-alive framing and
negative response handling.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from ecu_diag.errors import DecodeError, ECUError

DIAGNOSTIC_SESSION_CONTROL_SID = 0x10
TESTER_PRESENT_SID = 0x3E
NEGATIVE_RESPONSE_SID = 0x7F


@dataclass(frozen=True)
class SessionMode:
    """A diagnostic session an ECU can be placed into."""

    id: int
    name: str
    tp_require: bool  # Needs periodic tester present to stay active


@dataclass(frozen=True)
class SetSessionMode:
    """Request switches the ECU to another session mode."""

    mode: SessionMode


@dataclass(frozen=True)
class OtherService:
    """Any request that is not a session switch."""

    sid: int
    data: bytes


DiagAction = Union[SetSessionMode, OtherService]


@dataclass(frozen=True)
class DiagPayload:
    """An outgoing request: service id plus parameter bytes."""

    sid: int
    args: bytes = b""

    def to_bytes(self) -> bytes:
        return bytes([self.sid]) + bytes(self.args)


class EcuNRC(ABC):
    """
    Negative response code classification.

    Implemented once per protocol. Only standard codes drive retry
    decisions; non-standard bytes answer False to every question.
    """

    @property
    @abstractmethod
    def code(self) -> int:
        """Raw NRC byte."""

    @abstractmethod
    def description(self) -> str:
        """Human-readable form of the code."""

    @abstractmethod
    def is_busy(self) -> bool:
        """ECU is still processing; wait and read again."""

    @abstractmethod
    def is_wrong_mode(self) -> bool:
        """Service needs a different session mode."""

    @abstractmethod
    def is_repeat_request(self) -> bool:
        """ECU is busy; resend the request after a short delay."""


class DiagProtocol(ABC):
    """
    Contract every concrete diagnostic protocol implements.

    Servers and the dynamic session are written against this interface
    so protocol-specific framing stays in one place.
    """

    def __init__(self, session_modes: list[SessionMode]) -> None:
        self._session_modes: dict[int, SessionMode] = {
            mode.id: mode for mode in session_modes
        }

    @property
    @abstractmethod
    def default_session_id(self) -> int:
        """Id of the protocol's default/normal session."""

    @abstractmethod
    def protocol_name(self) -> str:
        """Stable identifier for logging."""

    @abstractmethod
    def nrc_from_byte(self, code: int) -> EcuNRC:
        """Classify a raw NRC byte."""

    def basic_session_mode(self) -> SessionMode | None:
        """The default/normal session, if registered."""
        return self._session_modes.get(self.default_session_id)

    def session_mode_registry(self) -> dict[int, SessionMode]:
        """Snapshot of all known session modes keyed by id."""
        return dict(self._session_modes)

    def register_session_mode(self, mode: SessionMode) -> None:
        """Add or replace a session mode (e.g. ECU-specific modes)."""
        self._session_modes[mode.id] = mode

    def interpret_request(self, payload: bytes) -> DiagAction:
        """
        Classify an outgoing request payload.

        Args:
            payload: Raw request bytes [sid, params...]

        Returns:
            SetSessionMode for a session switch, OtherService otherwise
        """
        if not payload:
            raise DecodeError(message="Empty request payload", raw_response=bytes(payload))

        sid = payload[0]
        if sid == DIAGNOSTIC_SESSION_CONTROL_SID and len(payload) >= 2:
            mode_id = payload[1]
            mode = self._session_modes.get(mode_id)
            if mode is None:
                mode = SessionMode(
                    id=mode_id,
                    name=f"Unknown (0x{mode_id:02X})",
                    tp_require=True,
                )
            return SetSessionMode(mode)

        return OtherService(sid=sid, data=bytes(payload[1:]))

    def build_keepalive_message(self, expect_response: bool) -> DiagPayload:
        """Tester present payload; 0x80 suppresses the ECU's reply."""
        return DiagPayload(TESTER_PRESENT_SID, bytes([0x00 if expect_response else 0x80]))

    def decode_response(self, response: bytes) -> bytes:
        """
        Decode a raw ECU response.

        Returns:
            The response unchanged if it is not a negative response

        Raises:
            ECUError: For a [0x7F, sid, nrc] negative response
            DecodeError: For an empty or truncated response
        """
        if not response:
            raise DecodeError(message="Empty response", raw_response=bytes(response))

        if response[0] == NEGATIVE_RESPONSE_SID:
            if len(response) < 3:
                raise DecodeError(
                    message=f"Truncated negative response: {bytes(response).hex()}",
                    raw_response=bytes(response),
                )
            raise ECUError(service_id=response[1], nrc=self.nrc_from_byte(response[2]))

        return bytes(response)


class ByteNRC(EcuNRC):
    """
    NRC backed by a raw byte and a protocol's table of standard codes.

    Subclasses set STANDARD_CODES and the three codes that drive retry
    decisions.
    """

    STANDARD_CODES: type[IntEnum]
    BUSY_CODE: int
    WRONG_MODE_CODE: int
    REPEAT_REQUEST_CODE: int

    def __init__(self, code: int) -> None:
        self._code = code & 0xFF

    @classmethod
    def from_byte(cls, code: int) -> "ByteNRC":
        return cls(code)

    @property
    def code(self) -> int:
        return self._code

    @property
    def standard(self) -> IntEnum | None:
        """The standard code this byte maps to, or None if non-standard."""
        try:
            return self.STANDARD_CODES(self._code)
        except ValueError:
            return None

    def description(self) -> str:
        standard = self.standard
        if standard is None:
            return f"Unknown error code 0x{self._code:02X}"
        return standard.name

    def is_busy(self) -> bool:
        return self.standard is not None and self._code == self.BUSY_CODE

    def is_wrong_mode(self) -> bool:
        return self.standard is not None and self._code == self.WRONG_MODE_CODE

    def is_repeat_request(self) -> bool:
        return self.standard is not None and self._code == self.REPEAT_REQUEST_CODE

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other._code == self._code

    def __hash__(self) -> int:
        return hash((type(self), self._code))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self._code:02X}, {self.description()})"
