"""
Diagnostic Trouble Codes

Protocol-neutral DTC container shared by the KWP2000 and UDS servers.
"""

from dataclasses import dataclass
from enum import Enum, IntFlag


class DTCFormat(Enum):
    """Encoding the ECU used for a DTC."""

    ISO15031_6 = "ISO15031-6"  # 2-byte SAE J2012 code (KWP2000)
    ISO14229_1 = "ISO14229-1"  # 3-byte code + failure type (UDS)


class DTCStatusMask(IntFlag):
    """UDS DTC status bits (ISO 14229-1 Annex D)."""

    TEST_FAILED = 0x01
    TEST_FAILED_THIS_OPERATION_CYCLE = 0x02
    PENDING_DTC = 0x04
    CONFIRMED_DTC = 0x08
    TEST_NOT_COMPLETED_SINCE_LAST_CLEAR = 0x10
    TEST_FAILED_SINCE_LAST_CLEAR = 0x20
    TEST_NOT_COMPLETED_THIS_OPERATION_CYCLE = 0x40
    WARNING_INDICATOR_REQUESTED = 0x80


# SAE J2012 system letters, indexed by the top two bits
_SYSTEM_LETTERS = "PCBU"


@dataclass(frozen=True)
class DTC:
    """A stored fault code as reported by the ECU."""

    raw: int
    status: int
    format: DTCFormat

    @property
    def mil_on(self) -> bool:
        """Whether the ECU requests the warning lamp for this fault."""
        if self.format is DTCFormat.ISO14229_1:
            return bool(self.status & DTCStatusMask.WARNING_INDICATOR_REQUESTED)
        # KWP2000 status byte: bit 7 = warning lamp
        return bool(self.status & 0x80)

    @property
    def readiness_flag_complete(self) -> bool:
        if self.format is DTCFormat.ISO14229_1:
            return not (self.status & DTCStatusMask.TEST_NOT_COMPLETED_THIS_OPERATION_CYCLE)
        # KWP2000 status byte: bit 4 = test not complete
        return not (self.status & 0x10)

    @property
    def code(self) -> str:
        """Format as a standard code string (e.g., P0171, P0171-1F)."""
        if self.format is DTCFormat.ISO14229_1:
            base = (self.raw >> 8) & 0xFFFF
            return f"{_format_j2012(base)}-{self.raw & 0xFF:02X}"
        return _format_j2012(self.raw & 0xFFFF)

    def __str__(self) -> str:
        return f"{self.code} (status 0x{self.status:02X})"


def _format_j2012(value: int) -> str:
    letter = _SYSTEM_LETTERS[(value >> 14) & 0x03]
    return f"{letter}{(value >> 12) & 0x03}{value & 0x0FFF:03X}"
