"""Core data types: packets, actions, reports and per-IP statistics.

Timestamps are POSIX seconds (``time.time()``) and durations are seconds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Optional, Tuple, Union

IpAddress = Union[IPv4Address, IPv6Address]


def _as_ip(value: Union[str, IpAddress]) -> IpAddress:
    if isinstance(value, (IPv4Address, IPv6Address)):
        return value
    return ip_address(value)


def _as_optional_ip(value: Optional[Union[str, IpAddress]]) -> Optional[IpAddress]:
    return None if value is None else _as_ip(value)


class LogMode(Enum):
    """Where log entries are written."""

    FILE = "File"
    SYSTEMD_JOURNAL = "SystemdJournal"


class PacketType(Enum):
    """Supported network protocols; the member name is the display label."""

    TCP = "Tcp"
    UDP = "Udp"
    ICMP = "Icmp"
    OTHER = "Other"


@dataclass
class PacketInfo:
    """Metadata of one analysed network packet."""

    source_ip: IpAddress
    dest_ip: IpAddress
    protocol: PacketType
    size: int
    source_port: Optional[int] = None
    dest_port: Optional[int] = None
    flags: Optional[Tuple[str, ...]] = None
    ttl: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.source_ip = _as_ip(self.source_ip)
        self.dest_ip = _as_ip(self.dest_ip)
        if self.flags is not None:
            self.flags = tuple(self.flags)

    @property
    def bare_syn(self) -> bool:
        """True when the flags carry SYN without ACK (a new TCP connection)."""
        return self.flags is not None and "SYN" in self.flags and "ACK" not in self.flags


class ActionKind(Enum):
    DROP = "Drop"
    BLOCK = "Block"
    UNBLOCK = "Unblock"
    RATE_LIMIT = "RateLimit"
    ENABLE_FORTRESS = "EnableFortress"
    DISABLE_FORTRESS = "DisableFortress"
    NONE = "None"


@dataclass(frozen=True)
class Action:
    """An action to apply after analysing traffic."""

    kind: ActionKind
    ip: Optional[IpAddress] = None
    duration: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip", _as_optional_ip(self.ip))

    @classmethod
    def drop(cls) -> "Action":
        return cls(ActionKind.DROP)

    @classmethod
    def block(cls, ip: Union[str, IpAddress], duration: float) -> "Action":
        return cls(ActionKind.BLOCK, ip, duration)

    @classmethod
    def unblock(cls, ip: Union[str, IpAddress]) -> "Action":
        return cls(ActionKind.UNBLOCK, ip)

    @classmethod
    def rate_limit(cls, ip: Union[str, IpAddress]) -> "Action":
        return cls(ActionKind.RATE_LIMIT, ip)


class ReportType(Enum):
    ATTACK = "Attack"
    ACTION = "Action"
    INFO = "Info"
    ALERT = "Alert"
    WARNING = "Warning"


@dataclass
class Report:
    """A report produced by a detection or an action."""

    report_type: ReportType
    message: str
    timestamp: float = field(default_factory=time.time)
    source_ip: Optional[IpAddress] = None
    details: Optional[str] = None
    severity: int = 5
    suggested_action: Optional[Action] = None

    def __post_init__(self) -> None:
        self.source_ip = _as_optional_ip(self.source_ip)

    def with_ip(self, ip: Union[str, IpAddress]) -> "Report":
        return replace(self, source_ip=_as_ip(ip))

    def with_details(self, details: str) -> "Report":
        return replace(self, details=details)

    def with_severity(self, severity: int) -> "Report":
        return replace(self, severity=max(0, min(severity, 10)))


@dataclass
class IpStats:
    """Traffic and trust statistics for one IP address."""

    packet_count: int = 0
    total_bytes: int = 0
    tcp_count: int = 0
    udp_count: int = 0
    icmp_count: int = 0
    other_count: int = 0

    syn_count: int = 0
    fin_count: int = 0
    rst_count: int = 0
    psh_count: int = 0
    ack_count: int = 0
    urg_count: int = 0

    first_seen: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)

    packets_per_second: float = 0.0
    bytes_per_second: float = 0.0

    is_blocked: bool = False
    block_expiry: Optional[float] = None

    anomaly_score: float = 0.0
    suspicious_count: int = 0
    trust_score: float = 0.5
    connection_stability: float = 0.0
    request_diversity: int = 0
    region_trust: float = 0.5

    connection_count: int = 0
    connection_regularity: float = 0.0
    average_interval: float = 0.0
    last_interval_update: float = field(default_factory=time.time)

    def _refresh_rates(self, now: float) -> None:
        elapsed = now - self.first_seen
        if elapsed >= 0:
            seconds = max(elapsed, 1.0)
            self.packets_per_second = self.packet_count / seconds
            self.bytes_per_second = self.total_bytes / seconds

    def update(self, packet: PacketInfo) -> None:
        """Account for one more packet."""
        now = time.time()
        self.last_seen = now
        self.packet_count += 1
        self.total_bytes += packet.size

        if packet.protocol is PacketType.TCP:
            self.tcp_count += 1
            if packet.bare_syn:
                self.syn_count += 1
        elif packet.protocol is PacketType.UDP:
            self.udp_count += 1
        elif packet.protocol is PacketType.ICMP:
            self.icmp_count += 1
        else:
            self.other_count += 1

        self._refresh_rates(now)

    def add_packet(self, size: int) -> None:
        """Account for a packet known only by its size."""
        now = time.time()
        self.last_seen = now
        self.packet_count += 1
        self.total_bytes += size
        self._refresh_rates(now)

    def block(self, duration: float) -> None:
        self.is_blocked = True
        self.block_expiry = time.time() + duration

    def unblock(self) -> None:
        self.is_blocked = False
        self.block_expiry = None

    def should_unblock(self) -> bool:
        """True once a block has passed its expiry."""
        if not self.is_blocked or self.block_expiry is None:
            return False
        return time.time() >= self.block_expiry

    def calculate_trust_score(self) -> None:
        """Recompute the overall trust score in [0, 1]."""
        base_score = (
            self._connection_age_factor()
            + self.connection_stability
            + self._request_diversity_factor()
            + self.region_trust
            + self.connection_regularity
        ) / 5.0
        penalty = (self.anomaly_score + self._suspicious_factor()) / 2.0
        self.trust_score = max(0.0, min(base_score - penalty, 1.0))

    def _connection_age_factor(self) -> float:
        elapsed = self.last_seen - self.first_seen
        if elapsed < 0:
            return 0.0
        hours = int(elapsed) / 3600.0
        return min(hours / 24.0, 0.9)

    def _request_diversity_factor(self) -> float:
        diversity = self.request_diversity
        if diversity == 0:
            return 0.1
        if diversity == 1:
            return 0.3
        if 2 <= diversity <= 4:
            return 0.7
        if 5 <= diversity <= 8:
            return 0.9
        return 0.5

    def _suspicious_factor(self) -> float:
        if self.packet_count < 10:
            return 0.0
        return min(self.suspicious_count / self.packet_count, 1.0)

    def update_connection_regularity(self) -> None:
        """Update the smoothed connection interval and the regularity score."""
        now = time.time()
        self.connection_count += 1

        interval = now - self.last_interval_update
        if interval >= 0 and self.connection_count > 1:
            weight = 0.8
            self.average_interval = weight * self.average_interval + (1.0 - weight) * interval
            deviation = abs(interval - self.average_interval)
            if self.average_interval > 0.0:
                relative_deviation = deviation / self.average_interval
            else:
                relative_deviation = 1.0
            self.connection_regularity = max(1.0 - min(relative_deviation, 1.0), 0.0)

        self.last_interval_update = now

    def set_region_trust(self, region_score: float) -> None:
        self.region_trust = region_score
        self.calculate_trust_score()


@dataclass
class BlockedIp:
    """A blocked IP address with its block period."""

    ip: IpAddress
    block_duration: float
    reason: str
    blocked_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.ip = _as_ip(self.ip)

    def is_expired(self) -> bool:
        elapsed = time.time() - self.blocked_at
        if elapsed < 0:
            return False
        return elapsed > self.block_duration


@dataclass
class GlobalStats:
    """System-wide protection counters."""

    total_packets: int = 0
    total_bytes: int = 0
    start_time: float = field(default_factory=time.time)
    blocked_ips: int = 0
    attack_attempts: int = 0
    fortress_mode_activations: int = 0