"""
Configuration

Server timing options, ISO-TP channel settings, and application
configuration persisted as YAML in the user config directory.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir

from ecu_diag.core.app_logging import get_logger

logger = get_logger(__name__)

APP_NAME = "ecu_diag"


@dataclass
class ServerOptions:
    """Options for a KWP2000 or UDS diagnostic server."""

    send_id: int
    recv_id: int
    read_timeout_ms: int = 1500
    write_timeout_ms: int = 1500
    tester_present_interval_ms: int = 2000
    tester_present_require_response: bool = True


@dataclass
class IsoTPSettings:
    """ISO-TP channel timing and addressing settings."""

    block_size: int = 8
    st_min: int = 20
    # (tx, rx) extended address bytes, None = normal addressing
    extended_addresses: tuple[int, int] | None = None
    pad_frame: bool = True
    can_speed: int = 500_000
    can_use_ext_addr: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.extended_addresses is not None:
            data["extended_addresses"] = list(self.extended_addresses)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IsoTPSettings":
        ext = data.get("extended_addresses")
        return cls(
            block_size=data.get("block_size", 8),
            st_min=data.get("st_min", 20),
            extended_addresses=tuple(ext) if ext else None,
            pad_frame=data.get("pad_frame", True),
            can_speed=data.get("can_speed", 500_000),
            can_use_ext_addr=data.get("can_use_ext_addr", False),
        )


@dataclass
class ConnectionConfig:
    """Connection-related configuration."""

    interface: str = "can0"
    bitrate: int = 500_000
    tx_id: int = 0x7E0
    rx_id: int = 0x7E8


@dataclass
class LoggingConfig:
    """Logging-related configuration."""

    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_raw_protocol: bool = False


@dataclass
class AppConfig:
    """Main application configuration."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    iso_tp: IsoTPSettings = field(default_factory=IsoTPSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def server_options(self) -> ServerOptions:
        """Server options for the configured ECU addresses."""
        return ServerOptions(
            send_id=self.connection.tx_id,
            recv_id=self.connection.rx_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "connection": {
                "interface": self.connection.interface,
                "bitrate": self.connection.bitrate,
                "tx_id": self.connection.tx_id,
                "rx_id": self.connection.rx_id,
            },
            "iso_tp": self.iso_tp.to_dict(),
            "logging": {
                "log_level": self.logging.log_level,
                "log_dir": self.logging.log_dir,
                "log_raw_protocol": self.logging.log_raw_protocol,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """Create configuration from dictionary."""
        config = cls()

        if "connection" in data:
            conn = data["connection"]
            config.connection = ConnectionConfig(
                interface=conn.get("interface", "can0"),
                bitrate=conn.get("bitrate", 500_000),
                tx_id=conn.get("tx_id", 0x7E0),
                rx_id=conn.get("rx_id", 0x7E8),
            )

        if "iso_tp" in data:
            config.iso_tp = IsoTPSettings.from_dict(data["iso_tp"])

        if "logging" in data:
            log = data["logging"]
            config.logging = LoggingConfig(
                log_level=log.get("log_level", "INFO"),
                log_dir=log.get("log_dir", "./logs"),
                log_raw_protocol=log.get("log_raw_protocol", False),
            )

        return config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    config_dir = Path(user_config_dir(APP_NAME))
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir / "config.yaml"


def load_config(path: Path | None = None) -> AppConfig:
    """
    Load configuration from file.

    Args:
        path: Path to configuration file (default: user config dir)

    Returns:
        Loaded configuration, or defaults if the file is missing or invalid
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.info(f"No configuration file found at {config_path}, using defaults")
        return AppConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        config = AppConfig.from_dict(data or {})
        logger.info(f"Configuration loaded from {config_path}")
        return config

    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load configuration: {e}")
        return AppConfig()


def save_config(config: AppConfig, path: Path | None = None) -> bool:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
        path: Path to save to (default: user config dir)

    Returns:
        True if saved successfully
    """
    config_path = path or get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
        return False
