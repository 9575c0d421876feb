"""
Mock ECU Implementations

Provides deterministic KWP2000 and UDS ECU responses for simulation
mode. All responses are predictable for reliable testing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from ecu_diag.core.app_logging import get_logger
from ecu_diag.dtc import DTCStatusMask
from ecu_diag.protocols.kwp2000 import (
    KWPNegativeResponse,
    KWPServiceID,
    KWPSessionType,
)
from ecu_diag.protocols.uds import (
    DTCSubFunction,
    UDSNegativeResponse,
    UDSServiceID,
    UDSSessionType,
)

logger = get_logger(__name__)


@dataclass
class MockDTC:
    """Mock DTC for simulation."""

    code: int  # 2-byte (KWP2000) or 3-byte (UDS) DTC
    status: int  # Status byte
    description: str = ""


@dataclass
class SimulationConfig:
    """Behavior of a mock ECU."""

    # Session ids the ECU switches into; None = protocol defaults
    accepted_sessions: set[int] | None = None

    # Pre-configured DTCs
    dtcs: list[MockDTC] = field(default_factory=list)

    # Reply to every request with this NRC
    forced_nrc: int | None = None

    # Never reply (tester sees a timeout)
    silent: bool = False


class MockECU(ABC):
    """
    Mock ECU for simulation.

    Subclasses register one handler per service id.
    """

    not_supported_nrc = 0x11
    sub_function_not_supported_nrc = 0x12

    def __init__(self, name: str, config: SimulationConfig | None = None) -> None:
        """
        Initialize mock ECU.

        Args:
            name: Label used in log output (e.g., "DME")
            config: Simulation configuration
        """
        self.name = name
        self._config = config or SimulationConfig()
        self._dtcs: list[MockDTC] = list(self._config.dtcs)
        self.session: int = self.default_session
        self.requests: list[bytes] = []
        self._handlers: dict[int, Callable[[bytes], bytes]] = {}

    @property
    @abstractmethod
    def default_session(self) -> int:
        """Session id the ECU starts in and returns to after reset."""

    @property
    def dtcs(self) -> list[MockDTC]:
        return list(self._dtcs)

    def add_dtc(self, dtc: MockDTC) -> None:
        self._dtcs.append(dtc)

    def process_request(self, request: bytes) -> bytes | None:
        """
        Process a request and return the response.

        Args:
            request: Request bytes

        Returns:
            Response bytes, or None for no response
        """
        if len(request) < 1:
            return None

        self.requests.append(bytes(request))
        service_id = request[0]
        sub_data = request[1:]

        logger.debug(f"[SIM:{self.name}] Request: {service_id:02X} {sub_data.hex()}")

        if self._config.silent:
            return None

        if self._config.forced_nrc is not None:
            return self._negative_response(service_id, self._config.forced_nrc)

        handler = self._handlers.get(service_id)
        if handler:
            response = handler(sub_data)
            logger.debug(f"[SIM:{self.name}] Response: {response.hex()}")
            return response

        # Service not supported
        return self._negative_response(service_id, self.not_supported_nrc)

    def _positive_response(self, service_id: int, data: bytes = b"") -> bytes:
        return bytes([service_id + 0x40]) + data

    def _negative_response(self, service_id: int, nrc: int) -> bytes:
        return bytes([0x7F, service_id, nrc])

    def _accepts_session(self, session_type: int, defaults: set[int]) -> bool:
        accepted = self._config.accepted_sessions
        return session_type in (defaults if accepted is None else accepted)

    def _handle_tester_present(self, data: bytes) -> bytes:
        """Handle Tester Present."""
        sub_function = data[0] if data else 0x00

        # Check suppress positive response bit
        if sub_function & 0x80:
            return b""  # No response

        return self._positive_response(0x3E, bytes([sub_function & 0x7F]))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class MockUdsECU(MockECU):
    """Mock ECU answering UDS (ISO 14229-1) requests."""

    not_supported_nrc = UDSNegativeResponse.SERVICE_NOT_SUPPORTED
    sub_function_not_supported_nrc = UDSNegativeResponse.SUB_FUNCTION_NOT_SUPPORTED

    def __init__(self, name: str = "UDS", config: SimulationConfig | None = None) -> None:
        super().__init__(name, config)
        self._handlers = {
            UDSServiceID.DIAGNOSTIC_SESSION_CONTROL: self._handle_session_control,
            UDSServiceID.TESTER_PRESENT: self._handle_tester_present,
            UDSServiceID.READ_DTC_INFORMATION: self._handle_read_dtc,
            UDSServiceID.CLEAR_DIAGNOSTIC_INFORMATION: self._handle_clear_dtc,
            UDSServiceID.ECU_RESET: self._handle_ecu_reset,
        }

    @property
    def default_session(self) -> int:
        return UDSSessionType.DEFAULT

    def _handle_session_control(self, data: bytes) -> bytes:
        """Handle Diagnostic Session Control."""
        if len(data) < 1:
            return self._negative_response(
                0x10, UDSNegativeResponse.INCORRECT_MESSAGE_LENGTH_OR_INVALID_FORMAT
            )

        session_type = data[0]
        if self._accepts_session(
            session_type, {UDSSessionType.DEFAULT, UDSSessionType.EXTENDED}
        ):
            self.session = session_type
            # Response: session type + P2 timing parameters
            return self._positive_response(0x10, bytes([session_type, 0x00, 0x19, 0x01, 0xF4]))

        return self._negative_response(0x10, self.sub_function_not_supported_nrc)

    def _handle_read_dtc(self, data: bytes) -> bytes:
        """Handle Read DTC Information."""
        if len(data) < 1:
            return self._negative_response(
                0x19, UDSNegativeResponse.INCORRECT_MESSAGE_LENGTH_OR_INVALID_FORMAT
            )

        sub_function = data[0]
        mask = data[1] if len(data) > 1 else 0xFF
        matching = [d for d in self._dtcs if d.status & mask]

        if sub_function == DTCSubFunction.REPORT_NUMBER_OF_DTC_BY_STATUS_MASK:
            # StatusAvailabilityMask + DTCFormatIdentifier + DTCCount
            return self._positive_response(
                0x19,
                bytes([sub_function, 0xFF, 0x01]) + len(matching).to_bytes(2, "big"),
            )

        if sub_function == DTCSubFunction.REPORT_DTC_BY_STATUS_MASK:
            response_data = bytes([sub_function, 0xFF])
            for dtc in matching:
                # DTC (3 bytes) + Status (1 byte)
                response_data += dtc.code.to_bytes(3, "big") + bytes([dtc.status])
            return self._positive_response(0x19, response_data)

        return self._negative_response(0x19, self.sub_function_not_supported_nrc)

    def _handle_clear_dtc(self, data: bytes) -> bytes:
        """Handle Clear Diagnostic Information."""
        if len(data) != 3:
            return self._negative_response(
                0x14, UDSNegativeResponse.INCORRECT_MESSAGE_LENGTH_OR_INVALID_FORMAT
            )
        self._dtcs.clear()
        logger.info(f"[SIM:{self.name}] DTCs cleared")
        return self._positive_response(0x14)

    def _handle_ecu_reset(self, data: bytes) -> bytes:
        """Handle ECU Reset."""
        if len(data) < 1:
            return self._negative_response(
                0x11, UDSNegativeResponse.INCORRECT_MESSAGE_LENGTH_OR_INVALID_FORMAT
            )

        reset_type = data[0]
        if reset_type in (0x01, 0x02, 0x03):
            logger.info(f"[SIM:{self.name}] ECU reset type {reset_type}")
            self.session = self.default_session
            return self._positive_response(0x11, bytes([reset_type]))

        return self._negative_response(0x11, self.sub_function_not_supported_nrc)


class MockKwpECU(MockECU):
    """Mock ECU answering KWP2000 (ISO 14230) requests."""

    not_supported_nrc = KWPNegativeResponse.SERVICE_NOT_SUPPORTED
    sub_function_not_supported_nrc = (
        KWPNegativeResponse.SUB_FUNCTION_NOT_SUPPORTED_INVALID_FORMAT
    )

    def __init__(self, name: str = "KWP", config: SimulationConfig | None = None) -> None:
        super().__init__(name, config)
        self._handlers = {
            KWPServiceID.START_DIAGNOSTIC_SESSION: self._handle_session_control,
            KWPServiceID.TESTER_PRESENT: self._handle_tester_present,
            KWPServiceID.READ_DTC_BY_STATUS: self._handle_read_dtc,
            KWPServiceID.CLEAR_DIAGNOSTIC_INFORMATION: self._handle_clear_dtc,
            KWPServiceID.ECU_RESET: self._handle_ecu_reset,
        }

    @property
    def default_session(self) -> int:
        return KWPSessionType.NORMAL

    def _handle_session_control(self, data: bytes) -> bytes:
        """Handle Start Diagnostic Session."""
        if len(data) < 1:
            return self._negative_response(0x10, self.sub_function_not_supported_nrc)

        session_type = data[0]
        if self._accepts_session(
            session_type,
            {KWPSessionType.NORMAL, KWPSessionType.EXTENDED_DIAGNOSTICS},
        ):
            self.session = session_type
            return self._positive_response(0x10, bytes([session_type]))

        return self._negative_response(0x10, self.sub_function_not_supported_nrc)

    def _handle_read_dtc(self, data: bytes) -> bytes:
        """Handle Read DTC By Status."""
        if len(data) != 3:
            return self._negative_response(0x18, self.sub_function_not_supported_nrc)

        group = int.from_bytes(data[1:3], "big")
        if group == 0xFF00:
            matching = list(self._dtcs)
        else:
            # Top two bits select the system (P/C/B/U)
            matching = [d for d in self._dtcs if (d.code & 0xC000) == (group & 0xC000)]

        response_data = bytes([len(matching)])
        for dtc in matching:
            # DTC (2 bytes) + Status (1 byte)
            response_data += (dtc.code & 0xFFFF).to_bytes(2, "big") + bytes([dtc.status])
        return self._positive_response(0x18, response_data)

    def _handle_clear_dtc(self, data: bytes) -> bytes:
        """Handle Clear Diagnostic Information."""
        if len(data) != 2:
            return self._negative_response(0x14, self.sub_function_not_supported_nrc)
        self._dtcs.clear()
        logger.info(f"[SIM:{self.name}] DTCs cleared")
        return self._positive_response(0x14, data)

    def _handle_ecu_reset(self, data: bytes) -> bytes:
        """Handle ECU Reset."""
        reset_mode = data[0] if data else 0x01
        logger.info(f"[SIM:{self.name}] ECU reset mode 0x{reset_mode:02X}")
        self.session = self.default_session
        return self._positive_response(0x11, bytes([reset_mode]))


def default_uds_dtcs() -> list[MockDTC]:
    """A small fault memory for UDS demos."""
    return [
        MockDTC(0x010100, DTCStatusMask.CONFIRMED_DTC, "Mass Air Flow Sensor"),
        MockDTC(0x013000, DTCStatusMask.PENDING_DTC, "Throttle Position"),
    ]


def default_kwp_dtcs() -> list[MockDTC]:
    """A small fault memory for KWP2000 demos."""
    return [
        MockDTC(0x0171, 0xE0, "System Too Lean"),
        MockDTC(0xC100, 0x20, "Lost Communication With ECM"),
    ]
