"""
ecu_diag Simulation

Mock KWP2000 and UDS ECUs for testing without hardware.
"""

from ecu_diag.sim.mock_ecus import (
    MockDTC,
    MockECU,
    MockKwpECU,
    MockUdsECU,
    SimulationConfig,
    default_kwp_dtcs,
    default_uds_dtcs,
)

__all__ = [
    "MockDTC",
    "MockECU",
    "MockKwpECU",
    "MockUdsECU",
    "SimulationConfig",
    "default_kwp_dtcs",
    "default_uds_dtcs",
]
