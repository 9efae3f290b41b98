"""Traffic tracking: security counters, distributed-attack detection and connections."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Dict, List, NamedTuple, Optional, Union

from zdefender.models import IpAddress


def _to_ip(value: Union[str, IpAddress]) -> IpAddress:
    if isinstance(value, (IPv4Address, IPv6Address)):
        return value
    return ip_address(value)


def _capped_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator capped at 10; a zero denominator saturates the cap."""
    if denominator == 0:
        return 10.0
    return min(numerator / denominator, 10.0)


@dataclass
class SecurityStats:
    """Real-time security counters."""

    average_security_score: float = 0.0
    total_packets_analyzed: int = 0
    inbound_bps: int = 0
    outbound_bps: int = 0
    attacks_detected: int = 0
    last_update: float = field(default_factory=time.time)

    def increment_attacks(self) -> None:
        self.attacks_detected += 1

    def time_since_update(self) -> float:
        """Seconds since the last update, never negative."""
        return max(0.0, time.time() - self.last_update)


@dataclass
class _Window:
    """Per-IP packet counts over a fixed time span."""

    span: float
    last_update: float = field(default_factory=time.time)
    counts: Dict[IpAddress, int] = field(default_factory=dict)
    total: int = 0

    def roll(self, now: float) -> None:
        if now - self.last_update >= self.span:
            self.counts.clear()
            self.total = 0
            self.last_update = now

    def record(self, ip: IpAddress) -> None:
        self.counts[ip] = self.counts.get(ip, 0) + 1
        self.total += 1

    @property
    def unique(self) -> int:
        return len(self.counts)


class AttackDetails(NamedTuple):
    start_time: float
    duration: float
    intensity: float
    unique_ips: int
    packets_per_second: int


@dataclass
class DDoSDetectionStats:
    """Detects distributed denial-of-service attacks from source-IP counts."""

    threshold_ratio: float = 50.0
    threshold_min_ips: int = 50
    threshold_packets_per_second: int = 5000
    attack_in_progress: bool = False
    attack_start_time: Optional[float] = None
    attack_intensity: float = 0.0
    _window_1s: _Window = field(default_factory=lambda: _Window(1.0), repr=False)
    _window_10s: _Window = field(default_factory=lambda: _Window(10.0), repr=False)
    _window_60s: _Window = field(default_factory=lambda: _Window(60.0), repr=False)

    @property
    def _windows(self) -> List[_Window]:
        return [self._window_1s, self._window_10s, self._window_60s]

    @property
    def total_packets_1s(self) -> int:
        return self._window_1s.total

    @property
    def total_packets_10s(self) -> int:
        return self._window_10s.total

    @property
    def total_packets_60s(self) -> int:
        return self._window_60s.total

    @property
    def unique_ips_1s(self) -> int:
        return self._window_1s.unique

    @property
    def unique_ips_10s(self) -> int:
        return self._window_10s.unique

    @property
    def unique_ips_60s(self) -> int:
        return self._window_60s.unique

    def process_ip(self, ip: Union[str, IpAddress]) -> None:
        """Count one packet from ``ip`` in every window."""
        address = _to_ip(ip)
        now = time.time()
        for window in self._windows:
            window.roll(now)
        for window in self._windows:
            window.record(address)

    def is_ddos_attack_in_progress(self) -> bool:
        """Evaluate the 10-second window and update the attack state."""
        unique = self._window_10s.unique
        total = self._window_10s.total
        if unique >= self.threshold_min_ips and unique > 0:
            packets_per_ip = total / unique
            packets_per_second = total // 10
            if (
                packets_per_ip >= self.threshold_ratio
                and packets_per_second >= self.threshold_packets_per_second
            ):
                if not self.attack_in_progress:
                    self.attack_in_progress = True
                    self.attack_start_time = time.time()
                base_intensity = (
                    _capped_ratio(packets_per_second, self.threshold_packets_per_second) / 10.0
                )
                ip_factor = _capped_ratio(unique, self.threshold_min_ips) / 10.0
                self.attack_intensity = (base_intensity + ip_factor) / 2.0
                return True

        if self.attack_in_progress and self.attack_start_time is not None:
            attack_duration = max(0.0, time.time() - self.attack_start_time)
            if attack_duration > 20.0:
                self.attack_in_progress = False
                self.attack_start_time = None
                self.attack_intensity = 0.0
            else:
                # Keep reporting the attack until it has clearly stopped.
                return True

        return False

    def get_attack_details(self) -> Optional[AttackDetails]:
        if not self.attack_in_progress or self.attack_start_time is None:
            return None
        return AttackDetails(
            start_time=self.attack_start_time,
            duration=max(0.0, time.time() - self.attack_start_time),
            intensity=self.attack_intensity,
            unique_ips=self._window_10s.unique,
            packets_per_second=self._window_10s.total // 10,
        )

    def set_thresholds(self, ratio: float, min_ips: int, packets_per_second: int) -> None:
        self.threshold_ratio = ratio
        self.threshold_min_ips = min_ips
        self.threshold_packets_per_second = packets_per_second


@dataclass
class EstablishedConnection:
    """An established network connection and its trust."""

    ip: IpAddress
    created_at: float = field(default_factory=time.time)
    last_activity: float = -1.0
    trust_score: float = 0.5
    packet_count: int = 1
    is_established: bool = False
    request_types: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.ip = _to_ip(self.ip)
        if self.last_activity < 0:
            self.last_activity = self.created_at

    def add_request_type(self, request_type: str) -> None:
        if request_type not in self.request_types:
            self.request_types.append(request_type)

    def update_activity(self) -> None:
        self.last_activity = time.time()
        self.packet_count += 1
        if self.trust_score < 0.95:
            self.trust_score = min(self.trust_score + 0.01, 1.0)
        if self.packet_count > 5 and not self.is_established:
            self.is_established = True

    def inactivity_duration(self) -> float:
        return max(0.0, time.time() - self.last_activity)

    def connection_age(self) -> float:
        return max(0.0, time.time() - self.created_at)

    def is_inactive_for(self, duration: float) -> bool:
        return self.inactivity_duration() >= duration


@dataclass
class IpRate:
    """Transfer rate of one IP address."""

    ip: IpAddress
    packets_per_second: float = 0.0
    bytes_per_second: float = 0.0
    last_update: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.ip = _to_ip(self.ip)


class IpState(Enum):
    NORMAL = "Normal"
    SUSPICIOUS = "Suspicious"
    THROTTLED = "Throttled"
    BLOCKED = "Blocked"
    TRUSTED = "Trusted"


class PacketDirection(Enum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"
    UNKNOWN = "Unknown"


@dataclass
class SyscallPacket:
    """A packet as seen at the system-call level."""

    source_ip: IpAddress
    dest_ip: IpAddress
    protocol: int
    size: int
    interface: str
    direction: PacketDirection
    source_port: Optional[int] = None
    dest_port: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.source_ip = _to_ip(self.source_ip)
        self.dest_ip = _to_ip(self.dest_ip)