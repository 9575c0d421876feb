"""
ecu_diag - KWP2000/UDS Diagnostic Session Layer

Talks to an ECU over ISO-TP without knowing in advance whether it
speaks KWP2000 (ISO 14230) or UDS (ISO 14229). Keeps diagnostic
sessions alive with tester present and classifies negative responses.
"""

__version__ = "0.1.0"

from ecu_diag.dtc import DTC, DTCFormat
from ecu_diag.dynamic_session import DynamicDiagSession
from ecu_diag.errors import (
    DecodeError,
    DiagError,
    ECUError,
    NotSupportedError,
    ServerNotRunningError,
    WrongMessageError,
)
from ecu_diag.server import Kwp2000DiagnosticServer, UdsDiagnosticServer
from ecu_diag.transport.base import ChannelTimeoutError, TransportError

__all__ = [
    "__version__",
    "DTC",
    "DTCFormat",
    "DynamicDiagSession",
    "DecodeError",
    "DiagError",
    "ECUError",
    "NotSupportedError",
    "ServerNotRunningError",
    "WrongMessageError",
    "Kwp2000DiagnosticServer",
    "UdsDiagnosticServer",
    "ChannelTimeoutError",
    "TransportError",
]
