"""
Tests for configuration defaults and persistence.
"""

import json
from pathlib import Path

from ecu_diag.core.config import (
    AppConfig,
    IsoTPSettings,
    ServerOptions,
    load_config,
    save_config,
)


class TestDefaults:
    """Tests for default values."""

    def test_server_options(self):
        options = ServerOptions(send_id=0x7E0, recv_id=0x7E8)
        assert options.read_timeout_ms == 1500
        assert options.write_timeout_ms == 1500
        assert options.tester_present_interval_ms == 2000
        assert options.tester_present_require_response

    def test_iso_tp_settings(self):
        settings = IsoTPSettings()
        assert settings.block_size == 8
        assert settings.st_min == 20
        assert settings.extended_addresses is None
        assert settings.pad_frame

    def test_server_options_from_app_config(self, app_config: AppConfig):
        app_config.connection.tx_id = 0x6F1
        app_config.connection.rx_id = 0x612

        options = app_config.server_options()
        assert options.send_id == 0x6F1
        assert options.recv_id == 0x612


class TestSerialization:
    """Tests for dict conversion."""

    def test_round_trip(self):
        config = AppConfig()
        config.connection.interface = "vcan0"
        config.iso_tp.extended_addresses = (0x12, 0xF1)
        config.logging.log_level = "DEBUG"

        restored = AppConfig.from_dict(config.to_dict())
        assert restored == config

    def test_partial_dict_keeps_defaults(self):
        config = AppConfig.from_dict({"connection": {"interface": "can1"}})
        assert config.connection.interface == "can1"
        assert config.connection.tx_id == 0x7E0
        assert config.iso_tp == IsoTPSettings()


class TestPersistence:
    """Tests for loading and saving configuration files."""

    def test_save_and_load_yaml(self, temp_dir: Path):
        path = temp_dir / "config.yaml"
        config = AppConfig()
        config.connection.bitrate = 250_000
        config.iso_tp.st_min = 5

        assert save_config(config, path)
        loaded = load_config(path)

        assert loaded.connection.bitrate == 250_000
        assert loaded.iso_tp.st_min == 5

    def test_load_json(self, temp_dir: Path):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"connection": {"tx_id": 0x700, "rx_id": 0x708}}))

        config = load_config(path)
        assert config.connection.tx_id == 0x700
        assert config.connection.rx_id == 0x708

    def test_missing_file_uses_defaults(self, temp_dir: Path):
        assert load_config(temp_dir / "missing.yaml") == AppConfig()

    def test_invalid_file_uses_defaults(self, temp_dir: Path):
        path = temp_dir / "broken.yaml"
        path.write_text("connection: [1, 2\n")

        assert load_config(path) == AppConfig()

    def test_empty_file_uses_defaults(self, temp_dir: Path):
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_config(path) == AppConfig()
