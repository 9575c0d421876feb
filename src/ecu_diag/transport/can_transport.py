"""
CAN Transport Implementation

ISO-TP channels over SocketCAN for KWP2000-on-CAN and UDS diagnostics.

Requirements:
- SocketCAN-compatible CAN adapter (e.g., PEAK PCAN-USB, Kvaser, CANable)
- python-can library
- can-isotp for the ISO-TP layer
"""

from typing import Any

from ecu_diag.core.app_logging import get_logger
from ecu_diag.core.config import IsoTPSettings
from ecu_diag.transport.base import (
    BaseChannel,
    BaseHardware,
    ChannelTimeoutError,
    TransportError,
)

logger = get_logger(__name__)

DEFAULT_CAN_BITRATE = 500000
PADDING_BYTE = 0xCC


class IsoTPChannel(BaseChannel):
    """
    ISO-TP channel built on a python-can bus.

    Segmentation, flow control and padding are handled by can-isotp.
    """

    def __init__(self, bus: Any) -> None:
        self._bus = bus
        self._stack: Any = None
        self._send_id: int = 0
        self._recv_id: int = 0

    def open(self, send_id: int, recv_id: int, settings: IsoTPSettings) -> None:
        try:
            import isotp
        except ImportError:
            logger.error("can-isotp not installed. Install with: pip install can-isotp")
            raise TransportError(
                message="can-isotp library not installed",
                code="MISSING_DEPENDENCY",
                recoverable=False,
            )

        if self._stack is not None:
            logger.warning("ISO-TP channel already open, closing first")
            self.close()

        if settings.extended_addresses is not None:
            tx_ext, rx_ext = settings.extended_addresses
            mode = (
                isotp.AddressingMode.Extended_29bits
                if settings.can_use_ext_addr
                else isotp.AddressingMode.Extended_11bits
            )
            address = isotp.Address(
                mode,
                txid=send_id,
                rxid=recv_id,
                target_address=tx_ext,
                source_address=rx_ext,
            )
        else:
            mode = (
                isotp.AddressingMode.Normal_29bits
                if settings.can_use_ext_addr
                else isotp.AddressingMode.Normal_11bits
            )
            address = isotp.Address(mode, txid=send_id, rxid=recv_id)

        params = {
            "stmin": settings.st_min,
            "blocksize": settings.block_size,
            "tx_padding": PADDING_BYTE if settings.pad_frame else None,
            "blocking_send": True,
        }

        try:
            self._stack = isotp.CanStack(self._bus, address=address, params=params)
            self._stack.start()
        except (ValueError, isotp.IsoTpError) as e:
            self._stack = None
            raise TransportError(
                message=f"Failed to configure ISO-TP channel: {e}",
                code="ISOTP_CONFIG_FAILED",
                recoverable=False,
            )

        self._send_id = send_id
        self._recv_id = recv_id
        logger.debug(f"ISO-TP configured: TX=0x{send_id:03X}, RX=0x{recv_id:03X}")

    def close(self) -> None:
        if self._stack is not None:
            self._stack.stop()
            self._stack = None
            logger.debug(f"ISO-TP channel closed: TX=0x{self._send_id:03X}")

    def is_open(self) -> bool:
        return self._stack is not None

    def send(self, data: bytes, timeout_ms: int) -> None:
        if self._stack is None:
            raise TransportError(
                message="ISO-TP channel not open",
                code="NOT_OPEN",
                recoverable=True,
            )

        import can
        import isotp

        try:
            self._stack.send(bytes(data), send_timeout=timeout_ms / 1000)
        except isotp.BlockingSendTimeout:
            raise ChannelTimeoutError(message=f"Send timed out after {timeout_ms} ms")
        except (isotp.BlockingSendFailure, can.CanError) as e:
            raise TransportError(
                message=f"ISO-TP send failed: {e}",
                code="SEND_FAILED",
                recoverable=True,
            ) from e
        logger.debug(f"TX ISO-TP ({len(data)}): {bytes(data).hex()}")

    def receive(self, timeout_ms: int) -> bytes:
        if self._stack is None:
            raise TransportError(
                message="ISO-TP channel not open",
                code="NOT_OPEN",
                recoverable=True,
            )

        import can

        try:
            data = self._stack.recv(block=True, timeout=timeout_ms / 1000)
        except can.CanError as e:
            raise TransportError(
                message=f"ISO-TP receive failed: {e}",
                code="RECEIVE_FAILED",
                recoverable=True,
            ) from e
        if data is None:
            raise ChannelTimeoutError(message=f"No response within {timeout_ms} ms")

        logger.debug(f"RX ISO-TP ({len(data)}): {bytes(data).hex()}")
        return bytes(data)

    def clear_buffers(self) -> None:
        if self._stack is not None:
            while self._stack.available():
                self._stack.recv()

    def get_info(self) -> dict[str, Any]:
        return {
            "type": "isotp",
            "is_open": self.is_open(),
            "tx_id": f"0x{self._send_id:03X}",
            "rx_id": f"0x{self._recv_id:03X}",
        }


class SocketCANHardware(BaseHardware):
    """
    SocketCAN adapter.

    The python-can bus is opened on first use and shared by every
    channel created from this adapter.
    """

    def __init__(self, interface: str = "can0", bitrate: int = DEFAULT_CAN_BITRATE) -> None:
        super().__init__()
        self._interface = interface
        self._bitrate = bitrate
        self._bus: Any = None

    def _open_bus(self) -> Any:
        try:
            import can
        except ImportError:
            logger.error("python-can not installed. Install with: pip install python-can")
            raise TransportError(
                message="python-can library not installed",
                code="MISSING_DEPENDENCY",
                recoverable=False,
            )

        try:
            bus = can.interface.Bus(
                channel=self._interface,
                interface="socketcan",
                bitrate=self._bitrate,
            )
        except can.CanError as e:
            logger.error(f"Failed to open CAN interface: {e}")
            raise TransportError(
                message=f"Failed to open CAN interface {self._interface}: {e}",
                code="CAN_OPEN_FAILED",
                recoverable=True,
            )
        except OSError as e:
            logger.error(f"CAN interface not found: {e}")
            raise TransportError(
                message=f"CAN interface {self._interface} not found. Is SocketCAN configured?",
                code="INTERFACE_NOT_FOUND",
                recoverable=True,
            )

        logger.info(f"CAN interface opened: {self._interface} @ {self._bitrate} bps")
        return bus

    def _create_iso_tp_channel(self) -> IsoTPChannel:
        if self._bus is None:
            self._bus = self._open_bus()
        return IsoTPChannel(self._bus)

    def shutdown(self) -> None:
        """Close the CAN bus. Channels created from it become unusable."""
        if self._bus is not None:
            self._bus.shutdown()
            self._bus = None
            logger.info(f"CAN interface closed: {self._interface}")

    def get_info(self) -> dict[str, Any]:
        return {
            "type": "socketcan",
            "interface": self._interface,
            "bitrate": self._bitrate,
            "is_open": self._bus is not None,
        }
