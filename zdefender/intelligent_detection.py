"""Behavioural anomaly detection built on per-IP traffic profiles."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Mapping, Optional

from zdefender.config import Config
from zdefender.models import Action, IpAddress, IpStats, PacketInfo, Report, ReportType

logger = logging.getLogger(__name__)

BEHAVIOR_WINDOW_SIZE = 100
RATE_HISTORY_SIZE = 20
TCP_HISTORY_SIZE = 10
BASELINE_REFRESH_SECONDS = 3600
BASELINE_MIN_HISTORY_SECONDS = 300


def _observed_rate(stats: IpStats) -> float:
    """Packets per whole second seen for an IP, or the raw count under one second."""
    elapsed = stats.last_seen - stats.first_seen
    seconds = int(elapsed) if elapsed >= 0 else 1
    if seconds > 0:
        return stats.packet_count / seconds
    return float(stats.packet_count)


def _observed_seconds(stats: IpStats) -> int:
    elapsed = stats.last_seen - stats.first_seen
    return int(elapsed) if elapsed >= 0 else 1


@dataclass
class BehaviorProfile:
    """Traffic profile of one IP, used to spot anomalous behaviour."""

    packet_rates: Deque[float] = field(default_factory=lambda: deque(maxlen=RATE_HISTORY_SIZE))
    mean_rate: float = 0.0
    std_deviation: float = 0.0
    tcp_connections: Deque[int] = field(default_factory=lambda: deque(maxlen=TCP_HISTORY_SIZE))
    protocol_distribution: Dict[str, float] = field(default_factory=dict)
    last_update: float = field(default_factory=time.time)
    anomaly_score: float = 0.0

    def update_packet_rate(self, rate: float) -> None:
        """Record a packet rate and recompute the mean and sample standard deviation."""
        self.packet_rates.append(rate)
        count = len(self.packet_rates)
        self.mean_rate = sum(self.packet_rates) / count
        if count > 1:
            variance = sum((x - self.mean_rate) ** 2 for x in self.packet_rates) / (count - 1)
            self.std_deviation = math.sqrt(variance)
        self.last_update = time.time()

    def update_protocol_distribution(self, protocol: str) -> None:
        """Fold one packet of ``protocol`` into the protocol shares."""
        total = sum(self.protocol_distribution.values()) + 1.0
        for name in self.protocol_distribution:
            self.protocol_distribution[name] /= total
        self.protocol_distribution[protocol] = (
            self.protocol_distribution.get(protocol, 0.0) + 1.0 / total
        )
        self.last_update = time.time()

    def calculate_anomaly_score(self, current_rate: float) -> float:
        """Score in [0, 100]; higher means more suspicious."""
        score = 0.0

        if len(self.packet_rates) >= 5 and self.std_deviation > 0.0:
            z_score = (current_rate - self.mean_rate) / self.std_deviation
            if z_score > 3.0:
                score += 40.0 * min(z_score - 3.0, 5.0) / 5.0

        tcp_ratio = self.protocol_distribution.get("TCP")
        if tcp_ratio is not None and tcp_ratio > 0.9:
            score += 20.0

        icmp_ratio = self.protocol_distribution.get("ICMP")
        if icmp_ratio is not None and icmp_ratio > 0.5:
            score += 30.0

        if current_rate > 1000.0:
            score += 10.0

        self.anomaly_score = min(score, 100.0)
        return self.anomaly_score


class IntelligentDetector:
    """Watches traffic trends per IP and reports anomalous behaviour."""

    def __init__(
        self,
        config: Optional[Config] = None,
        report_queue: Optional["asyncio.Queue[Report]"] = None,
        behavior_profiles: Optional[Dict[IpAddress, BehaviorProfile]] = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.report_queue = report_queue
        self.behavior_profiles: Dict[IpAddress, BehaviorProfile] = (
            behavior_profiles if behavior_profiles is not None else {}
        )
        self.anomaly_threshold = 70.0
        self.baseline_profile = BehaviorProfile()
        self.last_baseline_update = time.time()

    async def analyze_packet(
        self, packet: PacketInfo, ip_stats: Mapping[IpAddress, IpStats]
    ) -> Optional[float]:
        """Update the source's profile; return its anomaly score in [0, 1], if it has stats."""
        ip = packet.source_ip
        profile = self.behavior_profiles.setdefault(ip, BehaviorProfile())
        profile.update_protocol_distribution(packet.protocol.name)

        stats = ip_stats.get(ip)
        if stats is None:
            return None

        packet_rate = _observed_rate(stats)
        profile.update_packet_rate(packet_rate)
        anomaly_score = profile.calculate_anomaly_score(packet_rate)

        if anomaly_score > self.anomaly_threshold:
            await self._report_anomaly(ip, anomaly_score, packet_rate)

        return anomaly_score / 100.0

    async def _report_anomaly(self, ip: IpAddress, score: float, rate: float) -> None:
        if score > 90.0:
            message = (
                f"ALERTE CRITIQUE: Comportement très suspect détecté pour l'IP {ip}. "
                f"Score d'anomalie: {score:.1f}, Taux: {rate:.1f} paquets/sec"
            )
            severity = 9
        elif score > 80.0:
            message = (
                f"ALERTE ÉLEVÉE: Comportement suspect détecté pour l'IP {ip}. "
                f"Score d'anomalie: {score:.1f}, Taux: {rate:.1f} paquets/sec"
            )
            severity = 8
        else:
            message = (
                f"ALERTE MOYENNE: Comportement anormal détecté pour l'IP {ip}. "
                f"Score d'anomalie: {score:.1f}, Taux: {rate:.1f} paquets/sec"
            )
            severity = 6

        report = Report(
            report_type=ReportType.ALERT,
            message=message,
            source_ip=ip,
            details=f"Score d'anomalie: {score:.1f}",
            severity=severity,
            suggested_action=Action.block(ip, self.config.block_duration),
        )
        if self.report_queue is not None:
            await self.report_queue.put(report)
        else:
            logger.error("Erreur lors de l'envoi du rapport d'anomalie: aucun destinataire")

    def update_baseline(self, ip_stats: Mapping[IpAddress, IpStats]) -> None:
        """Refresh the normal-traffic baseline, at most once an hour."""
        now = time.time()
        elapsed = now - self.last_baseline_update
        if elapsed >= 0 and elapsed < BASELINE_REFRESH_SECONDS:
            return

        logger.info("Mise à jour de la baseline du trafic normal...")

        rates = [
            _observed_rate(stats)
            for stats in ip_stats.values()
            if not stats.is_blocked and _observed_seconds(stats) >= BASELINE_MIN_HISTORY_SECONDS
        ]
        if rates:
            avg_rate = sum(rates) / len(rates)
            self.baseline_profile.update_packet_rate(avg_rate)
            logger.info(
                "Baseline mise à jour. Taux moyen: %.2f paquets/sec basé sur %d IPs",
                avg_rate,
                len(rates),
            )

        self.last_baseline_update = now

    def adjust_threshold(self, false_positives: int, false_negatives: int) -> None:
        """Move the anomaly threshold by 5 towards fewer false results, within [50, 100)."""
        if false_positives > false_negatives and self.anomaly_threshold < 95.0:
            self.anomaly_threshold += 5.0
            logger.info(
                "Seuil d'anomalie augmenté à %.1f en raison de faux positifs",
                self.anomaly_threshold,
            )
        elif false_negatives > false_positives and self.anomaly_threshold > 50.0:
            self.anomaly_threshold -= 5.0
            logger.info(
                "Seuil d'anomalie réduit à %.1f en raison de faux négatifs",
                self.anomaly_threshold,
            )

    def copy(self) -> "IntelligentDetector":
        """A detector sharing profiles, config and queue, with a fresh baseline."""
        other = IntelligentDetector(self.config, self.report_queue, self.behavior_profiles)
        other.anomaly_threshold = self.anomaly_threshold
        other.last_baseline_update = self.last_baseline_update
        return other