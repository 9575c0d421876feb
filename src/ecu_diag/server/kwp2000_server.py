"""
KWP2000 Diagnostic Server

KWP2000 (ISO 14230) services on top of the shared diagnostic server.
"""

from ecu_diag.core.app_logging import get_logger, log_diagnostic_action
from ecu_diag.core.config import IsoTPSettings, ServerOptions
from ecu_diag.dtc import DTC, DTCFormat
from ecu_diag.errors import DecodeError
from ecu_diag.protocols.kwp2000 import (
    STORED_DTC_STATUS,
    ClearDTCRange,
    DTCRange,
    KWP2000Protocol,
    KWPServiceID,
)
from ecu_diag.server.base import DiagnosticServer
from ecu_diag.transport.base import BaseChannel

logger = get_logger(__name__)


class Kwp2000DiagnosticServer(DiagnosticServer):
    """Diagnostic server speaking KWP2000."""

    def __init__(
        self,
        options: ServerOptions,
        channel: BaseChannel,
        channel_cfg: IsoTPSettings,
        protocol: KWP2000Protocol | None = None,
    ) -> None:
        super().__init__(protocol or KWP2000Protocol(), channel, options, channel_cfg)

    def set_diagnostic_session_mode(self, session_type: int) -> bytes:
        """
        Start a diagnostic session.

        Args:
            session_type: Session id (0x81=normal, 0x92=extended diagnostics)
        """
        return self.execute_command_with_response(
            KWPServiceID.START_DIAGNOSTIC_SESSION,
            bytes([session_type]),
        )

    def tester_present(self) -> None:
        self.execute_command_with_response(KWPServiceID.TESTER_PRESENT, bytes([0x00]))

    def ecu_reset(self, reset_mode: int) -> bytes:
        log_diagnostic_action(
            "ecu_reset",
            ecu=self.ecu_label,
            protocol="KWP2000",
            details={"reset_mode": reset_mode},
        )
        return self.execute_command_with_response(
            KWPServiceID.ECU_RESET,
            bytes([reset_mode]),
        )

    def read_stored_dtcs(self, dtc_range: int = DTCRange.ALL) -> list[DTC]:
        """
        Read stored DTCs in a group.

        Args:
            dtc_range: DTC group selector (DTCRange)

        Returns:
            DTCs in the order the ECU reported them
        """
        response = self.execute_command_with_response(
            KWPServiceID.READ_DTC_BY_STATUS,
            bytes([STORED_DTC_STATUS]) + (dtc_range & 0xFFFF).to_bytes(2, "big"),
        )
        # [0x58, Count, (DTC high, DTC low, status)*]
        if len(response) < 2 or len(response) != 2 + response[1] * 3:
            raise DecodeError(
                message=f"Malformed DTC response: {response.hex()}",
                raw_response=response,
            )

        records = response[2:]
        dtcs = [
            DTC(
                raw=int.from_bytes(records[i : i + 2], "big"),
                status=records[i + 2],
                format=DTCFormat.ISO15031_6,
            )
            for i in range(0, len(records), 3)
        ]
        logger.debug(f"Read {len(dtcs)} DTC(s) from {self.ecu_label}")
        return dtcs

    def clear_dtc(self, clear_range: int = ClearDTCRange.ALL_DTCS) -> None:
        """
        Clear DTCs in a group.

        Args:
            clear_range: DTC group selector (ClearDTCRange)
        """
        log_diagnostic_action(
            "clear_dtc",
            ecu=self.ecu_label,
            protocol="KWP2000",
            details={"group": f"0x{clear_range:04X}"},
        )
        self.execute_command_with_response(
            KWPServiceID.CLEAR_DIAGNOSTIC_INFORMATION,
            (clear_range & 0xFFFF).to_bytes(2, "big"),
        )
