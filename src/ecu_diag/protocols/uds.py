"""
UDS Protocol (ISO 14229-1)

Service ids, negative response codes and session types for UDS,
plus the UDS implementation of the diagnostic protocol contract.
"""

from enum import IntEnum

from ecu_diag.protocols.base import ByteNRC, DiagProtocol, SessionMode


class UDSServiceID(IntEnum):
    """UDS Service Identifiers (ISO 14229-1)."""

    # Diagnostic and Communication Management
    DIAGNOSTIC_SESSION_CONTROL = 0x10
    ECU_RESET = 0x11
    SECURITY_ACCESS = 0x27
    COMMUNICATION_CONTROL = 0x28
    TESTER_PRESENT = 0x3E
    ACCESS_TIMING_PARAMETERS = 0x83
    CONTROL_DTC_SETTING = 0x85

    # Data Transmission
    READ_DATA_BY_ID = 0x22
    READ_MEMORY_BY_ADDRESS = 0x23
    READ_SCALING_DATA_BY_ID = 0x24
    WRITE_DATA_BY_ID = 0x2E

    # Stored Data Transmission
    CLEAR_DIAGNOSTIC_INFORMATION = 0x14
    READ_DTC_INFORMATION = 0x19

    # Input/Output Control
    INPUT_OUTPUT_CONTROL = 0x2F

    # Routine Control
    ROUTINE_CONTROL = 0x31


class UDSNegativeResponse(IntEnum):
    """UDS Negative Response Codes (ISO 14229-1)."""

    GENERAL_REJECT = 0x10
    SERVICE_NOT_SUPPORTED = 0x11
    SUB_FUNCTION_NOT_SUPPORTED = 0x12
    INCORRECT_MESSAGE_LENGTH_OR_INVALID_FORMAT = 0x13
    RESPONSE_TOO_LONG = 0x14
    BUSY_REPEAT_REQUEST = 0x21
    CONDITIONS_NOT_CORRECT = 0x22
    REQUEST_SEQUENCE_ERROR = 0x24
    NO_RESPONSE_FROM_SUBNET_COMPONENT = 0x25
    FAILURE_PREVENTS_EXECUTION_OF_REQUESTED_ACTION = 0x26
    REQUEST_OUT_OF_RANGE = 0x31
    SECURITY_ACCESS_DENIED = 0x33
    INVALID_KEY = 0x35
    EXCEEDED_NUMBER_OF_ATTEMPTS = 0x36
    REQUIRED_TIME_DELAY_NOT_EXPIRED = 0x37
    UPLOAD_DOWNLOAD_NOT_ACCEPTED = 0x70
    TRANSFER_DATA_SUSPENDED = 0x71
    GENERAL_PROGRAMMING_FAILURE = 0x72
    WRONG_BLOCK_SEQUENCE_COUNTER = 0x73
    REQUEST_CORRECTLY_RECEIVED_RESPONSE_PENDING = 0x78
    SUB_FUNCTION_NOT_SUPPORTED_IN_ACTIVE_SESSION = 0x7E
    SERVICE_NOT_SUPPORTED_IN_ACTIVE_SESSION = 0x7F
    RPM_TOO_HIGH = 0x81
    RPM_TOO_LOW = 0x82
    ENGINE_IS_RUNNING = 0x83
    ENGINE_IS_NOT_RUNNING = 0x84
    ENGINE_RUN_TIME_TOO_LOW = 0x85
    TEMPERATURE_TOO_HIGH = 0x86
    TEMPERATURE_TOO_LOW = 0x87
    VEHICLE_SPEED_TOO_HIGH = 0x88
    VEHICLE_SPEED_TOO_LOW = 0x89
    THROTTLE_PEDAL_TOO_HIGH = 0x8A
    THROTTLE_PEDAL_TOO_LOW = 0x8B
    TRANSMISSION_RANGE_NOT_IN_NEUTRAL = 0x8C
    TRANSMISSION_RANGE_NOT_IN_GEAR = 0x8D
    BRAKE_SWITCH_NOT_CLOSED = 0x8F
    SHIFTER_LEVER_NOT_IN_PARK = 0x90
    TORQUE_CONVERTER_CLUTCH_LOCKED = 0x91
    VOLTAGE_TOO_HIGH = 0x92
    VOLTAGE_TOO_LOW = 0x93


class UDSSessionType(IntEnum):
    """Standard UDS diagnostic session types."""

    DEFAULT = 0x01
    PROGRAMMING = 0x02
    EXTENDED = 0x03
    SAFETY_SYSTEM = 0x04


class UDSResetType(IntEnum):
    """ECU reset types (sub-function of 0x11)."""

    HARD_RESET = 0x01
    KEY_OFF_ON_RESET = 0x02
    SOFT_RESET = 0x03
    ENABLE_RAPID_POWER_SHUTDOWN = 0x04
    DISABLE_RAPID_POWER_SHUTDOWN = 0x05


class DTCSubFunction(IntEnum):
    """ReadDTCInformation (0x19) report types."""

    REPORT_NUMBER_OF_DTC_BY_STATUS_MASK = 0x01
    REPORT_DTC_BY_STATUS_MASK = 0x02


# Group of DTC meaning "every group"
ALL_DTC_GROUPS = 0x00FFFFFF


class UDSNrc(ByteNRC):
    """UDS negative response code."""

    STANDARD_CODES = UDSNegativeResponse
    BUSY_CODE = UDSNegativeResponse.REQUEST_CORRECTLY_RECEIVED_RESPONSE_PENDING
    WRONG_MODE_CODE = UDSNegativeResponse.SERVICE_NOT_SUPPORTED_IN_ACTIVE_SESSION
    REPEAT_REQUEST_CODE = UDSNegativeResponse.BUSY_REPEAT_REQUEST


class UDSProtocol(DiagProtocol):
    """UDS diagnostic protocol with the standard session types registered."""

    def __init__(self) -> None:
        super().__init__(
            [
                SessionMode(UDSSessionType.DEFAULT, "Default", tp_require=False),
                SessionMode(UDSSessionType.PROGRAMMING, "Programming", tp_require=True),
                SessionMode(UDSSessionType.EXTENDED, "Extended", tp_require=True),
                SessionMode(UDSSessionType.SAFETY_SYSTEM, "SafetySystem", tp_require=True),
            ]
        )

    @property
    def default_session_id(self) -> int:
        return UDSSessionType.DEFAULT

    def protocol_name(self) -> str:
        return "UDS"

    def nrc_from_byte(self, code: int) -> UDSNrc:
        return UDSNrc.from_byte(code)
