"""
Dynamic Diagnostic Session

Used when the target ECU's diagnostic protocol is unknown. The ECU is
probed with KWP2000 first, then UDS; the protocol that accepts an
extended session request is kept.

Also wraps the common operations (session switching, reading and
clearing DTCs) so callers need not care which protocol is active.
"""

from ecu_diag.core.app_logging import get_logger, log_audit_event, log_diagnostic_action
from ecu_diag.core.config import IsoTPSettings, ServerOptions
from ecu_diag.dtc import DTC
from ecu_diag.errors import DiagError, NotSupportedError
from ecu_diag.protocols.kwp2000 import ClearDTCRange, DTCRange, KWPSessionType
from ecu_diag.protocols.uds import ALL_DTC_GROUPS
from ecu_diag.server.kwp2000_server import Kwp2000DiagnosticServer
from ecu_diag.server.uds_server import UdsDiagnosticServer
from ecu_diag.transport.base import BaseHardware

logger = get_logger(__name__)

# Every status bit set: report DTCs regardless of status
ALL_STATUS_BITS = 0xFF

DiagServer = Kwp2000DiagnosticServer | UdsDiagnosticServer


class DynamicDiagSession:
    """
    Diagnostic session over whichever protocol the ECU accepted.

    Holds exactly one KWP2000 or UDS server.
    """

    def __init__(self, server: DiagServer) -> None:
        if not isinstance(server, (Kwp2000DiagnosticServer, UdsDiagnosticServer)):
            raise TypeError(f"Unsupported diagnostic server: {type(server).__name__}")
        self._server = server

    @classmethod
    def new_over_iso_tp(
        cls,
        hardware: BaseHardware,
        channel_cfg: IsoTPSettings,
        tx_id: int,
        rx_id: int,
    ) -> "DynamicDiagSession":
        """
        Negotiate a session with the ECU at tx_id/rx_id.

        KWP2000 is tried first, then UDS. To test a protocol the ECU is
        briefly put into its extended diagnostic session, then returned
        to the default session.

        Args:
            hardware: Adapter used to create ISO-TP channels
            channel_cfg: ISO-TP settings for the channels
            tx_id: CAN id for tester -> ECU
            rx_id: CAN id for ECU -> tester

        Returns:
            Session bound to the first protocol the ECU accepted

        Raises:
            TransportError: If a channel cannot be created
            DiagError: The last error recorded when neither protocol works
        """
        ecu = f"0x{tx_id:03X}/0x{rx_id:03X}"
        last_error: DiagError

        # Without a channel neither protocol can be probed
        channel = hardware.create_iso_tp_channel()

        try:
            kwp = Kwp2000DiagnosticServer(cls._probe_options(tx_id, rx_id), channel, channel_cfg)
        except DiagError as e:
            logger.info(f"KWP2000 server could not be created for {ecu}: {e}")
            last_error = e
        else:
            try:
                kwp.set_diagnostic_session_mode(KWPSessionType.EXTENDED_DIAGNOSTICS)
            except DiagError as e:
                logger.info(f"ECU {ecu} rejected KWP2000 extended session: {e}")
                kwp.close()
                last_error = NotSupportedError("ECU rejected KWP2000 extended session")
            else:
                _revert_to_default(kwp)
                return cls._negotiated(kwp, ecu)

        channel = hardware.create_iso_tp_channel()

        try:
            uds = UdsDiagnosticServer(cls._probe_options(tx_id, rx_id), channel, channel_cfg)
        except DiagError as e:
            logger.info(f"UDS server could not be created for {ecu}: {e}")
            last_error = e
        else:
            try:
                uds.set_extended_mode()
            except DiagError as e:
                logger.info(f"ECU {ecu} rejected UDS extended session: {e}")
                uds.close()
                last_error = NotSupportedError("ECU rejected UDS extended session")
            else:
                _revert_to_default(uds)
                return cls._negotiated(uds, ecu)

        log_diagnostic_action(
            "protocol_negotiation",
            ecu=ecu,
            success=False,
            error=str(last_error),
        )
        raise last_error

    @staticmethod
    def _probe_options(tx_id: int, rx_id: int) -> ServerOptions:
        return ServerOptions(
            send_id=tx_id,
            recv_id=rx_id,
            read_timeout_ms=1500,
            write_timeout_ms=1500,
            tester_present_interval_ms=2000,
            tester_present_require_response=True,
        )

    @classmethod
    def _negotiated(cls, server: DiagServer, ecu: str) -> "DynamicDiagSession":
        protocol = server.protocol.protocol_name()
        log_diagnostic_action("protocol_negotiation", ecu=ecu, protocol=protocol)
        log_audit_event(
            "protocol_negotiated",
            f"ECU {ecu} speaks {protocol}",
            {"ecu": ecu, "protocol": protocol},
        )
        return cls(server)

    @property
    def protocol_name(self) -> str:
        return self._server.protocol.protocol_name()

    def as_kwp_session(self) -> Kwp2000DiagnosticServer | None:
        """The KWP2000 server, or None if UDS is active."""
        if isinstance(self._server, Kwp2000DiagnosticServer):
            return self._server
        return None

    def as_uds_session(self) -> UdsDiagnosticServer | None:
        """The UDS server, or None if KWP2000 is active."""
        if isinstance(self._server, UdsDiagnosticServer):
            return self._server
        return None

    def enter_extended_mode(self) -> None:
        """Put the ECU into an extended diagnostic session."""
        server = self._server
        if isinstance(server, Kwp2000DiagnosticServer):
            server.set_diagnostic_session_mode(KWPSessionType.EXTENDED_DIAGNOSTICS)
        elif isinstance(server, UdsDiagnosticServer):
            server.set_extended_mode()
        else:
            raise TypeError(f"Unsupported diagnostic server: {type(server).__name__}")

    def enter_default_mode(self) -> None:
        """Return the ECU to its default session (normal operation)."""
        server = self._server
        if isinstance(server, Kwp2000DiagnosticServer):
            server.set_diagnostic_session_mode(KWPSessionType.NORMAL)
        elif isinstance(server, UdsDiagnosticServer):
            server.set_default_mode()
        else:
            raise TypeError(f"Unsupported diagnostic server: {type(server).__name__}")

    def read_all_fault_codes(self) -> list[DTC]:
        """Read every stored DTC, in the order the ECU reports them."""
        server = self._server
        if isinstance(server, Kwp2000DiagnosticServer):
            return server.read_stored_dtcs(DTCRange.ALL)
        elif isinstance(server, UdsDiagnosticServer):
            return server.get_dtcs_by_status_mask(ALL_STATUS_BITS)
        raise TypeError(f"Unsupported diagnostic server: {type(server).__name__}")

    def clear_all_fault_codes(self) -> None:
        """Clear every stored DTC. Nothing is read back afterwards."""
        server = self._server
        if isinstance(server, Kwp2000DiagnosticServer):
            server.clear_dtc(ClearDTCRange.ALL_DTCS)
        elif isinstance(server, UdsDiagnosticServer):
            server.clear_diagnostic_information(ALL_DTC_GROUPS)
        else:
            raise TypeError(f"Unsupported diagnostic server: {type(server).__name__}")

    def close(self) -> None:
        """Stop tester present and release the channel."""
        self._server.close()

    def __enter__(self) -> "DynamicDiagSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DynamicDiagSession(protocol={self.protocol_name}, ecu={self._server.ecu_label})"


def _revert_to_default(server: DiagServer) -> None:
    """Best-effort switch back to the default session after a probe."""
    try:
        if isinstance(server, Kwp2000DiagnosticServer):
            server.set_diagnostic_session_mode(KWPSessionType.NORMAL)
        else:
            server.set_default_mode()
    except DiagError as e:
        logger.warning(f"Could not return ECU to default session: {e}")
