"""
Diagnostic Server

Runs request/response exchanges for one protocol over one ISO-TP
channel and keeps non-default sessions alive with tester present.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from ecu_diag.core.app_logging import get_logger
from ecu_diag.core.config import IsoTPSettings, ServerOptions
from ecu_diag.errors import (
    DiagError,
    ECUError,
    ServerNotRunningError,
    WrongMessageError,
)
from ecu_diag.protocols.base import DiagProtocol, SessionMode, SetSessionMode
from ecu_diag.transport.base import BaseChannel

logger = get_logger(__name__)

POSITIVE_RESPONSE_OFFSET = 0x40
MAX_TRACE_ENTRIES = 1000


@dataclass
class TraceEntry:
    """Protocol trace entry."""

    direction: str  # "TX" or "RX"
    data: bytes
    description: str
    timestamp: datetime = field(default_factory=datetime.now)


class DiagnosticServer:
    """
    Request/response server for one diagnostic protocol.

    Owns its channel exclusively. Foreground exchanges and the
    background tester present share one exchange lock, so frames
    on the channel never interleave.
    """

    def __init__(
        self,
        protocol: DiagProtocol,
        channel: BaseChannel,
        options: ServerOptions,
        channel_cfg: IsoTPSettings,
    ) -> None:
        """
        Open the channel and start the tester present worker.

        Args:
            protocol: Protocol implementation used to frame and decode
            channel: Unopened channel; ownership moves to the server
            options: Timeouts and tester present settings
            channel_cfg: ISO-TP settings used to open the channel

        Raises:
            TransportError: If the channel cannot be opened
        """
        self._protocol = protocol
        self._channel = channel
        self._options = options
        self._exchange_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._trace: deque[TraceEntry] = deque(maxlen=MAX_TRACE_ENTRIES)
        self._trace_callbacks: list[Callable[[TraceEntry], None]] = []
        self._session_mode: SessionMode | None = protocol.basic_session_mode()
        self._running = False

        channel.open(options.send_id, options.recv_id, channel_cfg)
        channel.clear_buffers()
        self._running = True

        self._keepalive_thread = threading.Thread(
            target=self._keepalive_loop,
            name=f"{protocol.protocol_name()}-tester-present",
            daemon=True,
        )
        self._keepalive_thread.start()

        logger.info(
            f"{protocol.protocol_name()} server started "
            f"(TX=0x{options.send_id:03X}, RX=0x{options.recv_id:03X})"
        )

    @property
    def protocol(self) -> DiagProtocol:
        return self._protocol

    @property
    def options(self) -> ServerOptions:
        return self._options

    @property
    def current_session_mode(self) -> SessionMode | None:
        """Session mode the ECU was last successfully switched to."""
        return self._session_mode

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def trace(self) -> list[TraceEntry]:
        """Get protocol trace."""
        return list(self._trace)

    @property
    def ecu_label(self) -> str:
        return f"0x{self._options.send_id:03X}/0x{self._options.recv_id:03X}"

    def add_trace_callback(self, callback: Callable[[TraceEntry], None]) -> None:
        """Add callback for trace entries."""
        self._trace_callbacks.append(callback)

    def clear_trace(self) -> None:
        self._trace.clear()

    def register_session_mode(self, mode: SessionMode) -> None:
        """Register an ECU-specific session mode with the protocol."""
        self._protocol.register_session_mode(mode)

    def execute_command_with_response(self, service_id: int, args: bytes = b"") -> bytes:
        """
        Send a request and wait for its positive response.

        Args:
            service_id: Service identifier
            args: Parameter bytes following the service id

        Returns:
            Full positive response, service id byte included

        Raises:
            ECUError: ECU answered with a negative response
            WrongMessageError: Response belongs to a different service
            DecodeError: Response could not be parsed
            TransportError: Channel failure or timeout
        """
        return self.send_byte_array_with_response(bytes([service_id]) + bytes(args))

    def send_command(self, service_id: int, args: bytes = b"") -> None:
        """Send a request without waiting for a response."""
        self.send_byte_array(bytes([service_id]) + bytes(args))

    def send_byte_array_with_response(self, payload: bytes) -> bytes:
        """Send a raw payload and wait for its positive response."""
        self._ensure_running()
        payload = bytes(payload)
        action = self._protocol.interpret_request(payload)

        with self._exchange_lock:
            self._channel.clear_buffers()
            self._write(payload)
            raw = self._channel.receive(self._options.read_timeout_ms)
            self._add_trace("RX", raw, f"Response: {raw.hex()}")
            response = self._decode_reply(payload[0], raw)

            if isinstance(action, SetSessionMode):
                self._session_mode = action.mode
                logger.info(
                    f"{self._protocol.protocol_name()} session mode: {action.mode.name}"
                )

        return response

    def send_byte_array(self, payload: bytes) -> None:
        """Send a raw payload without waiting for a response."""
        self._ensure_running()
        with self._exchange_lock:
            self._write(bytes(payload))

    def close(self) -> None:
        """Stop tester present and release the channel."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()
        if self._keepalive_thread is not threading.current_thread():
            self._keepalive_thread.join()

        with self._exchange_lock:
            self._channel.close()

        logger.info(f"{self._protocol.protocol_name()} server stopped ({self.ecu_label})")

    def __enter__(self) -> "DiagnosticServer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_running(self) -> None:
        if not self._running:
            raise ServerNotRunningError()

    def _write(self, payload: bytes) -> None:
        self._add_trace("TX", payload, f"Request: {payload.hex()}")
        self._channel.send(payload, self._options.write_timeout_ms)

    def _keepalive_loop(self) -> None:
        interval = self._options.tester_present_interval_ms / 1000
        while not self._stop_event.wait(interval):
            mode = self._session_mode
            if mode is None or not mode.tp_require:
                continue
            try:
                self._send_keepalive()
            except DiagError as e:
                logger.warning(
                    f"{self._protocol.protocol_name()} tester present failed "
                    f"in {mode.name} session: {e}"
                )

    def _send_keepalive(self) -> None:
        require_response = self._options.tester_present_require_response
        payload = self._protocol.build_keepalive_message(require_response).to_bytes()

        with self._exchange_lock:
            if not self._running:
                return
            self._channel.clear_buffers()
            self._write(payload)
            if require_response:
                raw = self._channel.receive(self._options.read_timeout_ms)
                self._add_trace("RX", raw, f"Tester present: {raw.hex()}")
                self._decode_reply(payload[0], raw)

    def _decode_reply(self, request_sid: int, raw: bytes) -> bytes:
        """
        Decode a reply and check it answers request_sid.

        Negative responses echo the request sid; positive ones carry
        it plus 0x40. Either way a mismatch means the reply belongs to
        another request.
        """
        try:
            response = self._protocol.decode_response(raw)
        except ECUError as e:
            if e.service_id != request_sid:
                raise WrongMessageError(
                    expected_sid=request_sid,
                    received_sid=e.service_id,
                ) from e
            logger.debug(f"{self._protocol.protocol_name()} negative response: {e}")
            raise

        expected_sid = (request_sid + POSITIVE_RESPONSE_OFFSET) & 0xFF
        if response[0] != expected_sid:
            raise WrongMessageError(
                expected_sid=expected_sid,
                received_sid=response[0],
            )
        return response

    def _add_trace(self, direction: str, data: bytes, description: str) -> None:
        entry = TraceEntry(direction=direction, data=bytes(data), description=description)
        self._trace.append(entry)

        for callback in self._trace_callbacks:
            try:
                callback(entry)
            except Exception as e:
                logger.warning(f"Trace callback error: {e}")
