"""Service configuration stored as JSON."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from zdefender.models import LogMode

CONFIG_FILE = "/etc/zdefender/config.json"
DEFAULT_VERSION = "0.1.3"

PathLike = Union[str, "os.PathLike[str]"]


class ConfigError(ValueError):
    """The configuration data is incomplete or malformed."""


class ServiceState(Enum):
    ACTIVE = "Active"
    PASSIVE = "Passive"
    STOPPED = "Stopped"


class UpdateChannel(Enum):
    STABLE = "Stable"
    BETA = "Beta"
    DEV = "Dev"


@dataclass
class UpdateConfig:
    """Automatic update settings."""

    enabled: bool = True
    channel: str = "stable"
    check_interval: int = 24
    last_check: Optional[int] = None


def _require(data: Mapping[str, Any], names: List[str], what: str) -> None:
    missing = [name for name in names if name not in data]
    if missing:
        raise ConfigError(f"{what}: missing field(s) {', '.join(missing)}")


def _update_config_from_dict(data: Any) -> UpdateConfig:
    if not isinstance(data, Mapping):
        raise ConfigError("update_config must be an object")
    names = [f.name for f in fields(UpdateConfig)]
    _require(data, names, "update_config")
    return UpdateConfig(**{name: data[name] for name in names})


_ENUM_FIELDS = {
    "log_mode": LogMode,
    "service_state": ServiceState,
    "update_channel": UpdateChannel,
}


@dataclass
class Config:
    """All tunable settings of the service."""

    version: str = DEFAULT_VERSION
    interfaces: List[str] = field(default_factory=lambda: ["eth0"])
    packet_threshold: int = 2000
    check_interval: int = 5
    block_duration: int = 3600
    log_file: str = "/var/log/zdefender/zdefender.log"
    log_level: str = "info"
    log_mode: LogMode = LogMode.FILE
    service_state: ServiceState = ServiceState.STOPPED
    fortress_mode: bool = False
    whitelist: List[str] = field(default_factory=lambda: ["127.0.0.1", "::1"])
    realtime_stats: bool = False
    display_realtime_stats: bool = False
    allowed_ports: List[int] = field(default_factory=lambda: [80, 443, 8080, 8443])

    trust_threshold: float = 0.7
    region_trust_scores: Dict[str, float] = field(default_factory=dict)
    auto_block_threshold: float = 0.2
    auto_whitelist_threshold: float = 0.9
    connection_time_for_trust: int = 300

    essential_ports: List[int] = field(default_factory=lambda: [22, 80, 443])

    analyzer_threads: int = field(default_factory=lambda: os.cpu_count() or 1)
    packet_queue_size: int = 10000
    report_queue_size: int = 1000
    parallel_processing: bool = True

    ddos_detection_enabled: bool = False
    ddos_ratio_threshold: float = 0.5
    ddos_min_ips_threshold: int = 10
    ddos_pps_threshold: int = 1000
    ddos_protection_duration: int = 300
    ddos_auto_fortress: bool = False

    auto_update: bool = True
    update_check_interval: int = 24
    update_channel: UpdateChannel = UpdateChannel.STABLE
    last_update_check: Optional[str] = None

    update_config: UpdateConfig = field(default_factory=UpdateConfig)

    @classmethod
    def load(cls, path: Optional[PathLike] = None) -> "Config":
        """Read the configuration, writing the defaults first if the file is absent."""
        config_path = Path(path if path is not None else CONFIG_FILE)
        if not config_path.exists():
            default = cls()
            default.save(config_path)
            return default
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid configuration JSON: {exc}") from exc
        return cls.from_dict(data)

    def save(self, path: Optional[PathLike] = None) -> None:
        """Write the configuration as indented JSON, creating the directory if needed."""
        config_path = Path(path if path is not None else CONFIG_FILE)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, UpdateConfig):
                value = {uf.name: getattr(value, uf.name) for uf in fields(UpdateConfig)}
            elif isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be an object")
        names = [f.name for f in fields(cls)]
        _require(data, names, "configuration")
        kwargs: Dict[str, Any] = {}
        for name in names:
            value = data[name]
            if name in _ENUM_FIELDS:
                try:
                    value = _ENUM_FIELDS[name](value)
                except ValueError as exc:
                    raise ConfigError(f"{name}: unknown value {value!r}") from exc
            elif name == "update_config":
                value = _update_config_from_dict(value)
            elif isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = {str(k): float(v) for k, v in value.items()}
            kwargs[name] = value
        return cls(**kwargs)

    def get_region_trust(self, region_code: str) -> float:
        """Trust score of a region, 0.5 when not configured."""
        return self.region_trust_scores.get(region_code, 0.5)

    def set_region_trust(self, region_code: str, trust_score: float) -> None:
        """Set a region's trust score, clamped to [0, 1]."""
        self.region_trust_scores[region_code] = min(max(trust_score, 0.0), 1.0)

    def should_auto_block(self, trust_score: float) -> bool:
        return trust_score <= self.auto_block_threshold

    def should_auto_whitelist(self, trust_score: float, connection_time_secs: int) -> bool:
        return (
            trust_score >= self.auto_whitelist_threshold
            and connection_time_secs >= self.connection_time_for_trust
        )