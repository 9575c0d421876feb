"""
Mock Transport Implementation

Provides simulated hardware and channels for testing and demonstration.
Responses come from a connected mock ECU or from queued frames, so
behavior is deterministic in tests and CI.
"""

import threading
from collections import deque
from typing import Any, Callable

from ecu_diag.core.app_logging import get_logger
from ecu_diag.core.config import IsoTPSettings
from ecu_diag.transport.base import (
    BaseChannel,
    BaseHardware,
    ChannelTimeoutError,
    TransportError,
)

logger = get_logger(__name__)


class MockChannel(BaseChannel):
    """
    Mock ISO-TP channel.

    Requests are handed to the connected mock ECU (if any) and its
    reply is queued for the next receive call.
    """

    def __init__(self, ecu: Any = None) -> None:
        self._is_open: bool = False
        self._send_id: int | None = None
        self._recv_id: int | None = None
        self._settings: IsoTPSettings | None = None
        self._connected_ecu: Any = ecu
        self._tx_log: list[bytes] = []
        self._rx_buffer: deque[bytes] = deque()
        self._rx_ready = threading.Condition()
        self._scripted: deque[bytes] = deque()
        self.open_error: TransportError | None = None
        self.close_count: int = 0

    def open(self, send_id: int, recv_id: int, settings: IsoTPSettings) -> None:
        """Simulate opening the channel."""
        if self.open_error is not None:
            raise self.open_error
        logger.info(f"[MOCK] Opening channel TX=0x{send_id:03X} RX=0x{recv_id:03X}")
        self._send_id = send_id
        self._recv_id = recv_id
        self._settings = settings
        self._is_open = True

    def close(self) -> None:
        """Simulate closing the channel."""
        logger.info("[MOCK] Closing channel")
        self._is_open = False
        self.close_count += 1
        with self._rx_ready:
            self._rx_buffer.clear()

    def is_open(self) -> bool:
        return self._is_open

    def send(self, data: bytes, timeout_ms: int) -> None:
        """
        Simulate sending a payload.

        If connected to a mock ECU, processes the request and
        queues the response.
        """
        if not self._is_open:
            raise TransportError(
                message="Channel not open",
                code="NOT_OPEN",
                recoverable=True,
            )

        data = bytes(data)
        logger.debug(f"[MOCK] TX ({len(data)}): {data.hex()}")
        self._tx_log.append(data)

        if self._connected_ecu is not None:
            response = self._connected_ecu.process_request(data)
            if response:
                self.queue_response(response)

        if self._scripted:
            self.queue_response(self._scripted.popleft())

    def receive(self, timeout_ms: int) -> bytes:
        """Return the next queued payload or time out."""
        if not self._is_open:
            raise TransportError(
                message="Channel not open",
                code="NOT_OPEN",
                recoverable=True,
            )

        with self._rx_ready:
            if not self._rx_buffer:
                self._rx_ready.wait(timeout_ms / 1000)
            if not self._rx_buffer:
                raise ChannelTimeoutError(
                    message=f"No response within {timeout_ms} ms"
                )
            data = self._rx_buffer.popleft()

        logger.debug(f"[MOCK] RX ({len(data)}): {data.hex()}")
        return data

    def connect_mock_ecu(self, ecu: Any) -> None:
        """Connect a mock ECU for response generation."""
        self._connected_ecu = ecu
        logger.info(f"[MOCK] Connected mock ECU: {ecu}")

    def queue_response(self, response: bytes) -> None:
        """Queue a response for the next receive call."""
        with self._rx_ready:
            self._rx_buffer.append(bytes(response))
            self._rx_ready.notify()

    def script_response(self, response: bytes) -> None:
        """Deliver a response after the next send, one per send."""
        self._scripted.append(bytes(response))

    @property
    def sent(self) -> list[bytes]:
        """All payloads sent on this channel, oldest first."""
        return list(self._tx_log)

    def get_last_sent(self) -> bytes | None:
        """Get the last sent payload (for testing)."""
        return self._tx_log[-1] if self._tx_log else None

    def clear_buffers(self) -> None:
        with self._rx_ready:
            self._rx_buffer.clear()

    def get_info(self) -> dict[str, Any]:
        return {
            "type": "mock",
            "is_open": self._is_open,
            "tx_id": self._send_id,
            "rx_id": self._recv_id,
            "tx_count": len(self._tx_log),
            "rx_pending": len(self._rx_buffer),
        }


class MockHardware(BaseHardware):
    """
    Mock diagnostic adapter.

    Every created channel is wired to the same mock ECU and
    recorded in creation order.
    """

    def __init__(
        self,
        ecu: Any = None,
        channel_factory: Callable[[], MockChannel] | None = None,
    ) -> None:
        super().__init__()
        self._ecu = ecu
        self._channel_factory = channel_factory
        self.channels: list[MockChannel] = []
        self.create_error: TransportError | None = None
        # Fail only once this many channels have been created
        self.fail_after: int = 0

    def _create_iso_tp_channel(self) -> MockChannel:
        if self.create_error is not None and len(self.channels) >= self.fail_after:
            logger.warning(f"[MOCK] Channel creation failed: {self.create_error}")
            raise self.create_error

        if self._channel_factory is not None:
            channel = self._channel_factory()
        else:
            channel = MockChannel()
        if self._ecu is not None:
            channel.connect_mock_ecu(self._ecu)

        self.channels.append(channel)
        return channel

    def get_info(self) -> dict[str, Any]:
        return {"type": "mock", "channels_created": len(self.channels)}
