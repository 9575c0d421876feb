"""
Base Transport Interface

Defines the hardware and channel contracts the diagnostic servers need.
A hardware object creates ISO-TP channels; each channel carries framed
byte messages between one pair of CAN ids.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ecu_diag.core.config import IsoTPSettings
from ecu_diag.errors import DiagError


@dataclass
class TransportError(DiagError):
    """Transport-level error."""

    message: str
    code: str
    recoverable: bool = True

    def __str__(self) -> str:
        return f"TransportError[{self.code}]: {self.message}"


@dataclass
class ChannelTimeoutError(TransportError):
    """No frame arrived (or could be sent) within the timeout."""

    code: str = "TIMEOUT"


class BaseChannel(ABC):
    """
    Abstract base class for ISO-TP channel implementations.

    A channel is owned by exactly one diagnostic server once opened.
    """

    @abstractmethod
    def open(self, send_id: int, recv_id: int, settings: IsoTPSettings) -> None:
        """
        Open the channel.

        Args:
            send_id: CAN id used for tester -> ECU frames
            recv_id: CAN id of ECU -> tester frames
            settings: ISO-TP timing and addressing settings

        Raises:
            TransportError: If the channel cannot be opened
        """

    @abstractmethod
    def close(self) -> None:
        """Close the channel and release the underlying resources."""

    @abstractmethod
    def is_open(self) -> bool:
        """Check if the channel is open."""

    @abstractmethod
    def send(self, data: bytes, timeout_ms: int) -> None:
        """
        Send one payload.

        Raises:
            TransportError: On send failure
            ChannelTimeoutError: If the payload could not be sent in time
        """

    @abstractmethod
    def receive(self, timeout_ms: int) -> bytes:
        """
        Receive one payload.

        Raises:
            ChannelTimeoutError: If nothing arrives within timeout_ms
            TransportError: On channel failure
        """

    def clear_buffers(self) -> None:
        """Drop any pending received data (optional implementation)."""

    def get_info(self) -> dict[str, Any]:
        """Get channel information (optional implementation)."""
        return {"type": self.__class__.__name__}


class BaseHardware(ABC):
    """
    Abstract base class for diagnostic adapters.

    A hardware object can be shared by several owners; channel
    construction is serialized by an internal lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def create_iso_tp_channel(self) -> BaseChannel:
        """
        Create a new, unopened ISO-TP channel.

        The hardware lock is held only while the channel is built.

        Raises:
            TransportError: If the adapter cannot provide a channel
        """
        with self._lock:
            return self._create_iso_tp_channel()

    @abstractmethod
    def _create_iso_tp_channel(self) -> BaseChannel:
        """Build a channel; called with the hardware lock held."""

    def get_info(self) -> dict[str, Any]:
        """Get hardware information (optional implementation)."""
        return {"type": self.__class__.__name__}
