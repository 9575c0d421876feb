"""
ecu_diag Transport Layer

Hardware and ISO-TP channel abstractions for diagnostic communication.
Supports SocketCAN (python-can + can-isotp) and a mock adapter.
"""

from ecu_diag.transport.base import (
    BaseChannel,
    BaseHardware,
    ChannelTimeoutError,
    TransportError,
)
from ecu_diag.transport.can_transport import IsoTPChannel, SocketCANHardware
from ecu_diag.transport.mock_transport import MockChannel, MockHardware

__all__ = [
    "BaseChannel",
    "BaseHardware",
    "ChannelTimeoutError",
    "TransportError",
    "IsoTPChannel",
    "SocketCANHardware",
    "MockChannel",
    "MockHardware",
]
