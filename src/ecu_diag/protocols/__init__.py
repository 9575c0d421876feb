"""
ecu_diag Protocols Layer

The diagnostic protocol contract and its KWP2000 and UDS implementations.
"""

from ecu_diag.protocols.base import (
    DiagAction,
    DiagPayload,
    DiagProtocol,
    EcuNRC,
    OtherService,
    SessionMode,
    SetSessionMode,
)
from ecu_diag.protocols.kwp2000 import KWP2000Protocol, KWPNrc, KWPSessionType
from ecu_diag.protocols.uds import UDSNrc, UDSProtocol, UDSSessionType

__all__ = [
    "DiagAction",
    "DiagPayload",
    "DiagProtocol",
    "EcuNRC",
    "OtherService",
    "SessionMode",
    "SetSessionMode",
    "KWP2000Protocol",
    "KWPNrc",
    "KWPSessionType",
    "UDSNrc",
    "UDSProtocol",
    "UDSSessionType",
]
