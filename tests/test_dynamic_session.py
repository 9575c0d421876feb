"""
Tests for protocol negotiation and the protocol-agnostic session API.
"""

import pytest

from ecu_diag.core.config import IsoTPSettings
from ecu_diag.dtc import DTCFormat
from ecu_diag.dynamic_session import DynamicDiagSession
from ecu_diag.errors import ECUError, NotSupportedError
from ecu_diag.server.kwp2000_server import Kwp2000DiagnosticServer
from ecu_diag.server.uds_server import UdsDiagnosticServer
from ecu_diag.sim.mock_ecus import (
    MockKwpECU,
    MockUdsECU,
    SimulationConfig,
    default_kwp_dtcs,
    default_uds_dtcs,
)
from ecu_diag.transport.base import TransportError
from ecu_diag.transport.mock_transport import MockChannel, MockHardware

TX_ID = 0x7E0
RX_ID = 0x7E8


def negotiate(hardware: MockHardware) -> DynamicDiagSession:
    return DynamicDiagSession.new_over_iso_tp(hardware, IsoTPSettings(), TX_ID, RX_ID)


class TestNegotiation:
    """Tests for DynamicDiagSession.new_over_iso_tp."""

    def test_kwp_ecu(self):
        """KWP2000 answers first, so UDS is never attempted."""
        ecu = MockKwpECU(config=SimulationConfig(dtcs=default_kwp_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            assert session.protocol_name == "KWP2000"
            assert len(hardware.channels) == 1
            assert hardware.channels[0].sent == [bytes([0x10, 0x92]), bytes([0x10, 0x81])]
            assert ecu.session == 0x81

    def test_uds_ecu(self):
        """A UDS ECU rejects the KWP2000 probe; UDS gets a fresh channel."""
        ecu = MockUdsECU(config=SimulationConfig(dtcs=default_uds_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            assert session.protocol_name == "UDS"
            assert len(hardware.channels) == 2

            kwp_channel, uds_channel = hardware.channels
            assert kwp_channel.sent == [bytes([0x10, 0x92])]
            assert kwp_channel.close_count == 1
            assert uds_channel.sent == [bytes([0x10, 0x03]), bytes([0x10, 0x01])]
            assert uds_channel.is_open()
            assert ecu.session == 0x01

    def test_channel_settings(self):
        ecu = MockKwpECU()
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            info = hardware.channels[0].get_info()
            assert info["tx_id"] == TX_ID
            assert info["rx_id"] == RX_ID

            options = session.as_kwp_session().options
            assert options.read_timeout_ms == 1500
            assert options.write_timeout_ms == 1500
            assert options.tester_present_interval_ms == 2000
            assert options.tester_present_require_response

    def test_revert_failure_is_ignored(self):
        """Only the extended switch decides; the revert result does not matter."""
        ecu = MockKwpECU(config=SimulationConfig(accepted_sessions={0x92}))

        with negotiate(MockHardware(ecu)) as session:
            assert session.protocol_name == "KWP2000"

    def test_no_protocol(self):
        ecu = MockUdsECU(config=SimulationConfig(accepted_sessions={0x01}))
        hardware = MockHardware(ecu)

        with pytest.raises(NotSupportedError):
            negotiate(hardware)

        assert len(hardware.channels) == 2
        assert all(c.close_count == 1 for c in hardware.channels)

    def test_forced_nrc_rejects_both(self):
        ecu = MockKwpECU(config=SimulationConfig(forced_nrc=0x22))

        with pytest.raises(NotSupportedError):
            negotiate(MockHardware(ecu))

        assert ecu.requests == [bytes([0x10, 0x92]), bytes([0x10, 0x03])]

    def test_first_channel_creation_failure(self):
        hardware = MockHardware(MockKwpECU())
        hardware.create_error = TransportError(message="adapter gone", code="NO_ADAPTER")

        with pytest.raises(TransportError) as exc_info:
            negotiate(hardware)

        assert exc_info.value.code == "NO_ADAPTER"
        assert hardware.channels == []

    def test_second_channel_creation_failure(self):
        """Creating the UDS channel fails: that error propagates unchanged."""
        ecu = MockUdsECU(config=SimulationConfig(accepted_sessions={0x01}))
        hardware = MockHardware(ecu)
        hardware.create_error = TransportError(message="adapter gone", code="NO_ADAPTER")
        hardware.fail_after = 1

        with pytest.raises(TransportError) as exc_info:
            negotiate(hardware)

        assert exc_info.value.code == "NO_ADAPTER"
        assert len(hardware.channels) == 1

    def test_last_error_wins_construction(self):
        """KWP2000 probe rejected, UDS server cannot open: the open error is raised."""
        ecu = MockUdsECU(config=SimulationConfig(accepted_sessions={0x01}))
        open_error = TransportError(message="bus off", code="BUS_OFF")
        created = []

        def factory() -> MockChannel:
            channel = MockChannel()
            if created:
                channel.open_error = open_error
            created.append(channel)
            return channel

        hardware = MockHardware(ecu, channel_factory=factory)

        with pytest.raises(TransportError) as exc_info:
            negotiate(hardware)

        assert exc_info.value is open_error

    def test_last_error_wins_both_construction(self):
        """Neither server can open: the UDS channel's error is raised."""
        kwp_error = TransportError(message="bus off", code="BUS_OFF")
        uds_error = TransportError(message="no ack", code="NO_ACK")
        errors = [kwp_error, uds_error]
        created = []

        def factory() -> MockChannel:
            channel = MockChannel()
            channel.open_error = errors[len(created)]
            created.append(channel)
            return channel

        hardware = MockHardware(MockUdsECU(), channel_factory=factory)

        with pytest.raises(TransportError) as exc_info:
            negotiate(hardware)

        assert exc_info.value is uds_error
        assert exc_info.value is not kwp_error
        assert len(hardware.channels) == 2

    def test_last_error_wins_probe(self):
        """KWP2000 server cannot open, UDS probe rejected: NotSupported is raised."""
        ecu = MockUdsECU(config=SimulationConfig(accepted_sessions={0x01}))
        created = []

        def factory() -> MockChannel:
            channel = MockChannel()
            if not created:
                channel.open_error = TransportError(message="bus off", code="BUS_OFF")
            created.append(channel)
            return channel

        hardware = MockHardware(ecu, channel_factory=factory)

        with pytest.raises(NotSupportedError):
            negotiate(hardware)

    def test_kwp_construction_failure_then_uds(self):
        ecu = MockUdsECU()
        created = []

        def factory() -> MockChannel:
            channel = MockChannel()
            if not created:
                channel.open_error = TransportError(message="bus off", code="BUS_OFF")
            created.append(channel)
            return channel

        with negotiate(MockHardware(ecu, channel_factory=factory)) as session:
            assert session.protocol_name == "UDS"


class TestSessionOperations:
    """Tests for protocol-agnostic operations."""

    def test_kwp_read_all_fault_codes(self):
        ecu = MockKwpECU(config=SimulationConfig(dtcs=default_kwp_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            dtcs = session.read_all_fault_codes()

            assert hardware.channels[0].sent[-1] == bytes([0x18, 0x02, 0xFF, 0x00])
            assert [d.code for d in dtcs] == ["P0171", "U0100"]
            assert dtcs[0].format is DTCFormat.ISO15031_6

    def test_uds_read_all_fault_codes(self):
        ecu = MockUdsECU(config=SimulationConfig(dtcs=default_uds_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            dtcs = session.read_all_fault_codes()

            assert hardware.channels[1].sent[-1] == bytes([0x19, 0x02, 0xFF])
            assert [d.raw for d in dtcs] == [0x010100, 0x013000]
            assert dtcs[0].format is DTCFormat.ISO14229_1

    def test_kwp_clear_all_fault_codes(self):
        ecu = MockKwpECU(config=SimulationConfig(dtcs=default_kwp_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            session.clear_all_fault_codes()

            assert hardware.channels[0].sent[-1] == bytes([0x14, 0xFF, 0x00])
            assert ecu.dtcs == []

    def test_uds_clear_all_fault_codes(self):
        ecu = MockUdsECU(config=SimulationConfig(dtcs=default_uds_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            session.clear_all_fault_codes()

            assert hardware.channels[1].sent[-1] == bytes([0x14, 0xFF, 0xFF, 0xFF])
            assert ecu.dtcs == []

    def test_clear_is_not_followed_by_read(self):
        ecu = MockKwpECU(config=SimulationConfig(dtcs=default_kwp_dtcs()))
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            before = len(ecu.requests)
            session.clear_all_fault_codes()
            assert len(ecu.requests) == before + 1

    def test_empty_fault_memory(self):
        with negotiate(MockHardware(MockKwpECU())) as session:
            assert session.read_all_fault_codes() == []

    def test_enter_extended_and_default_kwp(self):
        ecu = MockKwpECU()
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            session.enter_extended_mode()
            assert ecu.session == 0x92
            session.enter_default_mode()
            assert ecu.session == 0x81
            assert hardware.channels[0].sent[-2:] == [bytes([0x10, 0x92]), bytes([0x10, 0x81])]

    def test_enter_extended_and_default_uds(self):
        ecu = MockUdsECU()
        hardware = MockHardware(ecu)

        with negotiate(hardware) as session:
            session.enter_extended_mode()
            assert session.as_uds_session().current_session_mode.name == "Extended"
            session.enter_default_mode()
            assert session.as_uds_session().current_session_mode.name == "Default"
            assert hardware.channels[1].sent[-2:] == [bytes([0x10, 0x03]), bytes([0x10, 0x01])]

    def test_errors_propagate(self):
        ecu = MockKwpECU()

        with negotiate(MockHardware(ecu)) as session:
            ecu._config.forced_nrc = 0x80
            with pytest.raises(ECUError) as exc_info:
                session.enter_extended_mode()

            assert exc_info.value.is_wrong_mode()


class TestAccessors:
    """Tests for downcast accessors and direct construction."""

    def test_kwp_accessors(self):
        with negotiate(MockHardware(MockKwpECU())) as session:
            assert isinstance(session.as_kwp_session(), Kwp2000DiagnosticServer)
            assert session.as_uds_session() is None

    def test_uds_accessors(self):
        with negotiate(MockHardware(MockUdsECU())) as session:
            assert isinstance(session.as_uds_session(), UdsDiagnosticServer)
            assert session.as_kwp_session() is None

    def test_wrap_existing_server(self, uds_server):
        session = DynamicDiagSession(uds_server)
        assert session.as_uds_session() is uds_server
        assert session.protocol_name == "UDS"

    def test_rejects_unknown_server(self):
        with pytest.raises(TypeError):
            DynamicDiagSession(object())

    def test_close_releases_channel(self):
        hardware = MockHardware(MockKwpECU())
        session = negotiate(hardware)
        session.close()

        assert not hardware.channels[0].is_open()
        assert not session.as_kwp_session().is_running
