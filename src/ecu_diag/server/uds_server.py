"""
UDS Diagnostic Server

UDS (ISO 14229-1) services on top of the shared diagnostic server.
"""

from ecu_diag.core.app_logging import get_logger, log_diagnostic_action
from ecu_diag.core.config import IsoTPSettings, ServerOptions
from ecu_diag.dtc import DTC, DTCFormat
from ecu_diag.errors import DecodeError
from ecu_diag.protocols.uds import (
    ALL_DTC_GROUPS,
    DTCSubFunction,
    UDSProtocol,
    UDSServiceID,
    UDSSessionType,
)
from ecu_diag.server.base import DiagnosticServer
from ecu_diag.transport.base import BaseChannel

logger = get_logger(__name__)


class UdsDiagnosticServer(DiagnosticServer):
    """Diagnostic server speaking UDS."""

    def __init__(
        self,
        options: ServerOptions,
        channel: BaseChannel,
        channel_cfg: IsoTPSettings,
        protocol: UDSProtocol | None = None,
    ) -> None:
        super().__init__(protocol or UDSProtocol(), channel, options, channel_cfg)

    def set_session_mode(self, session_type: int) -> bytes:
        """
        Change diagnostic session.

        Args:
            session_type: Session type (0x01=default, 0x02=programming, 0x03=extended)

        Returns:
            Positive response (includes the ECU's P2 timing parameters)
        """
        return self.execute_command_with_response(
            UDSServiceID.DIAGNOSTIC_SESSION_CONTROL,
            bytes([session_type]),
        )

    def set_extended_mode(self) -> bytes:
        return self.set_session_mode(UDSSessionType.EXTENDED)

    def set_default_mode(self) -> bytes:
        return self.set_session_mode(UDSSessionType.DEFAULT)

    def tester_present(self) -> None:
        """Send one tester present and wait for the ECU's reply."""
        self.execute_command_with_response(UDSServiceID.TESTER_PRESENT, bytes([0x00]))

    def ecu_reset(self, reset_type: int) -> bytes:
        """
        Reset ECU.

        Args:
            reset_type: Reset type (0x01=hard, 0x02=keyoff/on, 0x03=soft)
        """
        log_diagnostic_action(
            "ecu_reset",
            ecu=self.ecu_label,
            protocol="UDS",
            details={"reset_type": reset_type},
        )
        return self.execute_command_with_response(
            UDSServiceID.ECU_RESET,
            bytes([reset_type]),
        )

    def get_number_of_dtcs_by_status_mask(self, status_mask: int) -> int:
        """Count DTCs whose status matches any bit of status_mask."""
        response = self.execute_command_with_response(
            UDSServiceID.READ_DTC_INFORMATION,
            bytes([DTCSubFunction.REPORT_NUMBER_OF_DTC_BY_STATUS_MASK, status_mask]),
        )
        # [0x59, SubFunc, AvailabilityMask, FormatID, CountHigh, CountLow]
        if len(response) < 6:
            raise DecodeError(
                message=f"DTC count response too short: {response.hex()}",
                raw_response=response,
            )
        return int.from_bytes(response[4:6], "big")

    def get_dtcs_by_status_mask(self, status_mask: int) -> list[DTC]:
        """
        Read DTCs whose status matches any bit of status_mask.

        Returns:
            DTCs in the order the ECU reported them
        """
        response = self.execute_command_with_response(
            UDSServiceID.READ_DTC_INFORMATION,
            bytes([DTCSubFunction.REPORT_DTC_BY_STATUS_MASK, status_mask]),
        )
        # [0x59, SubFunc, AvailabilityMask, (DTC high, mid, low, status)*]
        if len(response) < 3 or (len(response) - 3) % 4 != 0:
            raise DecodeError(
                message=f"Malformed DTC response: {response.hex()}",
                raw_response=response,
            )

        records = response[3:]
        dtcs = [
            DTC(
                raw=int.from_bytes(records[i : i + 3], "big"),
                status=records[i + 3],
                format=DTCFormat.ISO14229_1,
            )
            for i in range(0, len(records), 4)
        ]
        logger.debug(f"Read {len(dtcs)} DTC(s) from {self.ecu_label}")
        return dtcs

    def clear_diagnostic_information(self, group: int = ALL_DTC_GROUPS) -> None:
        """
        Clear diagnostic trouble codes.

        Args:
            group: DTC group (0xFFFFFF = all)
        """
        log_diagnostic_action(
            "clear_dtc",
            ecu=self.ecu_label,
            protocol="UDS",
            details={"group": f"0x{group:06X}"},
        )
        self.execute_command_with_response(
            UDSServiceID.CLEAR_DIAGNOSTIC_INFORMATION,
            (group & 0xFFFFFF).to_bytes(3, "big"),
        )
