"""
KWP2000 Protocol (ISO 14230)

Service ids, negative response codes, session types and DTC group
selectors for KWP2000, plus its implementation of the diagnostic
protocol contract.
"""

from enum import IntEnum

from ecu_diag.protocols.base import ByteNRC, DiagProtocol, SessionMode


class KWPServiceID(IntEnum):
    """KWP2000 Service Identifiers (ISO 14230-3)."""

    START_DIAGNOSTIC_SESSION = 0x10
    ECU_RESET = 0x11
    CLEAR_DIAGNOSTIC_INFORMATION = 0x14
    READ_STATUS_OF_DTC = 0x17
    READ_DTC_BY_STATUS = 0x18
    READ_ECU_IDENTIFICATION = 0x1A
    READ_DATA_BY_LOCAL_ID = 0x21
    READ_DATA_BY_ID = 0x22
    READ_MEMORY_BY_ADDRESS = 0x23
    SECURITY_ACCESS = 0x27
    DISABLE_NORMAL_MESSAGE_TRANSMISSION = 0x28
    ENABLE_NORMAL_MESSAGE_TRANSMISSION = 0x29
    START_ROUTINE_BY_LOCAL_ID = 0x31
    TESTER_PRESENT = 0x3E
    ACCESS_TIMING_PARAMETERS = 0x83
    CONTROL_DTC_SETTING = 0x85


class KWPNegativeResponse(IntEnum):
    """KWP2000 Negative Response Codes (ISO 14230-3)."""

    GENERAL_REJECT = 0x10
    SERVICE_NOT_SUPPORTED = 0x11
    SUB_FUNCTION_NOT_SUPPORTED_INVALID_FORMAT = 0x12
    BUSY_REPEAT_REQUEST = 0x21
    CONDITIONS_NOT_CORRECT_OR_REQUEST_SEQUENCE_ERROR = 0x22
    ROUTINE_NOT_COMPLETE = 0x23
    REQUEST_OUT_OF_RANGE = 0x31
    SECURITY_ACCESS_DENIED = 0x33
    INVALID_KEY = 0x35
    EXCEED_NUMBER_OF_ATTEMPTS = 0x36
    REQUIRED_TIME_DELAY_NOT_EXPIRED = 0x37
    DOWNLOAD_NOT_ACCEPTED = 0x40
    IMPROPER_DOWNLOAD_TYPE = 0x41
    CANNOT_DOWNLOAD_TO_SPECIFIED_ADDRESS = 0x42
    CANNOT_DOWNLOAD_NUMBER_OF_BYTES_REQUESTED = 0x43
    UPLOAD_NOT_ACCEPTED = 0x50
    IMPROPER_UPLOAD_TYPE = 0x51
    CANNOT_UPLOAD_FROM_SPECIFIED_ADDRESS = 0x52
    CANNOT_UPLOAD_NUMBER_OF_BYTES_REQUESTED = 0x53
    TRANSFER_SUSPENDED = 0x71
    TRANSFER_ABORTED = 0x72
    ILLEGAL_ADDRESS_IN_BLOCK_TRANSFER = 0x74
    ILLEGAL_BYTE_COUNT_IN_BLOCK_TRANSFER = 0x75
    ILLEGAL_BLOCK_TRANSFER_TYPE = 0x76
    BLOCK_TRANSFER_DATA_CHECKSUM_ERROR = 0x77
    REQUEST_CORRECTLY_RECEIVED_RESPONSE_PENDING = 0x78
    INCORRECT_BYTE_COUNT_DURING_BLOCK_TRANSFER = 0x79
    SERVICE_NOT_SUPPORTED_IN_ACTIVE_SESSION = 0x80
    DATA_DECOMPRESSION_FAILED = 0x9A
    DATA_DECRYPTION_FAILED = 0x9B
    ECU_NOT_RESPONDING = 0xA0
    ECU_ADDRESS_UNKNOWN = 0xA1


class KWPSessionType(IntEnum):
    """Standard KWP2000 diagnostic session types."""

    NORMAL = 0x81
    REPROGRAMMING = 0x85
    STANDBY = 0x89
    PASSIVE = 0x90
    EXTENDED_DIAGNOSTICS = 0x92


class KWPResetMode(IntEnum):
    """ECU reset modes (sub-function of 0x11)."""

    POWER_ON_RESET = 0x01
    NON_VOLATILE_MEMORY_RESET = 0x82


class DTCRange(IntEnum):
    """DTC group selector for ReadDiagnosticTroubleCodesByStatus."""

    POWERTRAIN = 0x0000
    CHASSIS = 0x4000
    BODY = 0x8000
    NETWORK = 0xC000
    ALL = 0xFF00


class ClearDTCRange(IntEnum):
    """DTC group selector for ClearDiagnosticInformation."""

    ALL_POWERTRAIN = 0x0000
    ALL_CHASSIS = 0x4000
    ALL_BODY = 0x8000
    ALL_NETWORK = 0xC000
    ALL_DTCS = 0xFF00


# statusOfDTC request selector: stored DTCs with their status byte
STORED_DTC_STATUS = 0x02


class KWPNrc(ByteNRC):
    """KWP2000 negative response code."""

    STANDARD_CODES = KWPNegativeResponse
    BUSY_CODE = KWPNegativeResponse.REQUEST_CORRECTLY_RECEIVED_RESPONSE_PENDING
    WRONG_MODE_CODE = KWPNegativeResponse.SERVICE_NOT_SUPPORTED_IN_ACTIVE_SESSION
    REPEAT_REQUEST_CODE = KWPNegativeResponse.BUSY_REPEAT_REQUEST


class KWP2000Protocol(DiagProtocol):
    """KWP2000 diagnostic protocol with the standard session types registered."""

    def __init__(self) -> None:
        super().__init__(
            [
                SessionMode(KWPSessionType.NORMAL, "Normal", tp_require=False),
                SessionMode(KWPSessionType.REPROGRAMMING, "Reprogramming", tp_require=True),
                SessionMode(KWPSessionType.STANDBY, "Standby", tp_require=True),
                SessionMode(KWPSessionType.PASSIVE, "Passive", tp_require=True),
                SessionMode(
                    KWPSessionType.EXTENDED_DIAGNOSTICS,
                    "ExtendedDiagnostics",
                    tp_require=True,
                ),
            ]
        )

    @property
    def default_session_id(self) -> int:
        return KWPSessionType.NORMAL

    def protocol_name(self) -> str:
        return "KWP2000"

    def nrc_from_byte(self, code: int) -> KWPNrc:
        return KWPNrc.from_byte(code)
