"""
Pytest configuration and fixtures for ecu_diag tests.
"""

import pytest
from pathlib import Path
from typing import Generator

from ecu_diag.core.config import AppConfig, IsoTPSettings, ServerOptions
from ecu_diag.server.kwp2000_server import Kwp2000DiagnosticServer
from ecu_diag.server.uds_server import UdsDiagnosticServer
from ecu_diag.sim.mock_ecus import (
    MockKwpECU,
    MockUdsECU,
    SimulationConfig,
    default_kwp_dtcs,
    default_uds_dtcs,
)
from ecu_diag.transport.mock_transport import MockChannel


@pytest.fixture
def app_config() -> AppConfig:
    """Create test application configuration."""
    return AppConfig()


@pytest.fixture
def iso_tp_settings() -> IsoTPSettings:
    """Default ISO-TP settings."""
    return IsoTPSettings()


@pytest.fixture
def server_options() -> ServerOptions:
    """Short timeouts; tester present effectively disabled."""
    return ServerOptions(
        send_id=0x7E0,
        recv_id=0x7E8,
        read_timeout_ms=200,
        write_timeout_ms=200,
        tester_present_interval_ms=60_000,
    )


@pytest.fixture
def keepalive_options() -> ServerOptions:
    """Short timeouts and a fast tester present interval."""
    return ServerOptions(
        send_id=0x7E0,
        recv_id=0x7E8,
        read_timeout_ms=200,
        write_timeout_ms=200,
        tester_present_interval_ms=20,
    )


@pytest.fixture
def uds_ecu() -> MockUdsECU:
    """Create mock UDS ECU with two stored DTCs."""
    return MockUdsECU("DME", SimulationConfig(dtcs=default_uds_dtcs()))


@pytest.fixture
def kwp_ecu() -> MockKwpECU:
    """Create mock KWP2000 ECU with two stored DTCs."""
    return MockKwpECU("EGS", SimulationConfig(dtcs=default_kwp_dtcs()))


@pytest.fixture
def uds_channel(uds_ecu: MockUdsECU) -> MockChannel:
    """Create mock channel wired to the UDS ECU."""
    return MockChannel(uds_ecu)


@pytest.fixture
def kwp_channel(kwp_ecu: MockKwpECU) -> MockChannel:
    """Create mock channel wired to the KWP2000 ECU."""
    return MockChannel(kwp_ecu)


@pytest.fixture
def uds_server(
    uds_channel: MockChannel,
    server_options: ServerOptions,
    iso_tp_settings: IsoTPSettings,
) -> Generator[UdsDiagnosticServer, None, None]:
    """Create UDS server over the mock channel."""
    server = UdsDiagnosticServer(server_options, uds_channel, iso_tp_settings)
    yield server
    server.close()


@pytest.fixture
def kwp_server(
    kwp_channel: MockChannel,
    server_options: ServerOptions,
    iso_tp_settings: IsoTPSettings,
) -> Generator[Kwp2000DiagnosticServer, None, None]:
    """Create KWP2000 server over the mock channel."""
    server = Kwp2000DiagnosticServer(server_options, kwp_channel, iso_tp_settings)
    yield server
    server.close()


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Create temporary directory for test files."""
    return tmp_path
