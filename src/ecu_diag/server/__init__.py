"""
ecu_diag Server Layer

Protocol servers that own an ISO-TP channel and keep sessions alive.
"""

from ecu_diag.server.base import DiagnosticServer, TraceEntry
from ecu_diag.server.kwp2000_server import Kwp2000DiagnosticServer
from ecu_diag.server.uds_server import UdsDiagnosticServer

__all__ = [
    "DiagnosticServer",
    "TraceEntry",
    "Kwp2000DiagnosticServer",
    "UdsDiagnosticServer",
]
