"""
Bridge Configuration
====================

Pydantic models for config.yml plus the loader that creates the file from the
packaged sample on first run.
"""

import os
import shutil
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_FILE_NAME = "config.yml"
EVENTS_LOG_NAME = "events.log"
SAMPLE_FILE = Path(__file__).with_name("_config.yml")


class ConfigValidationError(ValueError):
    """Error in configuration validation."""
    pass


class MqttConfig(BaseModel):
    """Broker connection and topic layout"""

    model_config = {"extra": "forbid"}

    host: str = Field(default="localhost", description='Broker address, "host" or "host:port"')
    port: int = Field(default=1883, ge=1, le=65535, description="Broker port when host has none")
    preface: str = Field(default="cameras", description="Topic namespace root")
    qos: int = Field(default=0, ge=0, le=2, description="QoS for motion and image publishes")
    client_id: str = Field(default="mqtt-camera-ftpd", description="MQTT client identifier")
    username: Optional[str] = Field(default=None, description="Broker username (optional)")
    password: Optional[str] = Field(default=None, description="Broker password (optional)")
    keepalive: int = Field(default=60, ge=1, description="Keep-alive interval in seconds")

    @field_validator("host")
    @classmethod
    def _strip_scheme(cls, value: str) -> str:
        value = value.strip()
        if value.startswith("mqtt://"):
            value = value[len("mqtt://"):]
        if not value:
            raise ValueError("mqtt.host cannot be empty")
        return value

    @field_validator("preface")
    @classmethod
    def _normalize_preface(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("mqtt.preface cannot be empty")
        if "+" in value or "#" in value:
            raise ValueError(f"mqtt.preface cannot contain wildcards, got {value!r}")
        return value

    @property
    def broker_address(self) -> Tuple[str, int]:
        """
        Resolve (host, port), honoring a port embedded in ``host``.

        Example:
            >>> MqttConfig(host="broker.lan:1884").broker_address
            ('broker.lan', 1884)
        """
        host, sep, port = self.host.rpartition(":")
        # bare IPv6 literals keep the separate port
        if sep and host and ":" not in host and port.isdigit():
            return host, int(port)
        return self.host, self.port


class BridgeConfig(BaseModel):
    """Configuration for the FTP to MQTT camera bridge"""

    model_config = {"extra": "forbid"}

    port: int = Field(default=21, ge=0, le=65535, description="FTP listening port (0 = ephemeral)")
    address: str = Field(default="0.0.0.0", description="FTP bind address")
    passive_ports: Optional[str] = Field(default=None, description='Passive ports range, e.g. "60000-60100"')
    masquerade_address: Optional[str] = Field(default=None, description="Address advertised in PASV replies")
    max_connections: int = Field(default=64, ge=1, description="Simultaneous FTP connections")
    mqtt: MqttConfig = Field(default_factory=MqttConfig)

    @field_validator("passive_ports")
    @classmethod
    def _validate_passive_ports(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        start, sep, end = value.partition("-")
        if not sep or not start.strip().isdigit() or not end.strip().isdigit():
            raise ValueError(f'passive_ports must look like "60000-60100", got {value!r}')
        if int(start) > int(end):
            raise ValueError(f"passive_ports range is reversed: {value!r}")
        return value

    @property
    def passive_port_range(self) -> Optional[range]:
        """Passive ports as an inclusive range (None = any free port)"""
        if self.passive_ports is None:
            return None
        start, _, end = self.passive_ports.partition("-")
        return range(int(start), int(end) + 1)

    def to_status_dict(self) -> dict:
        """
        Serialize config for display.

        Returns:
            Dict with every field, broker password masked
        """
        data = self.model_dump()
        if data["mqtt"].get("password"):
            data["mqtt"]["password"] = "********"
        return data


def resolve_config_dir(config_dir: Optional[Union[str, Path]] = None) -> Path:
    """Config directory: explicit argument, $CONFIG_DIR, or the working directory."""
    if config_dir is None:
        config_dir = os.environ.get("CONFIG_DIR") or os.getcwd()
    return Path(config_dir)


def load_config(config_dir: Optional[Union[str, Path]] = None) -> BridgeConfig:
    """
    Load config.yml from ``config_dir``, creating it from the sample if absent.

    Args:
        config_dir: Directory holding config.yml (see resolve_config_dir)

    Returns:
        Validated BridgeConfig

    Raises:
        ConfigValidationError: If the file is not valid YAML or has invalid values
    """
    config_path = resolve_config_dir(config_dir) / CONFIG_FILE_NAME

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(SAMPLE_FILE, config_path)

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"{config_path} must contain a mapping, got {type(data).__name__}"
        )

    try:
        return BridgeConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration in {config_path}: {e}") from e
