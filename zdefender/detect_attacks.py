"""Rule-based attack detection from per-IP statistics."""

from __future__ import annotations

import logging
import math
from typing import Optional

from zdefender.models import Action, IpStats, PacketInfo, PacketType

logger = logging.getLogger(__name__)


def detect_attacks(
    packet: PacketInfo,
    stats: IpStats,
    threshold_packets_per_second: float,
    threshold_syn_percentage: float,
    fortress_mode: bool,
) -> Optional[Action]:
    """Return the action suggested for the packet's source, or None."""
    source = packet.source_ip

    if fortress_mode:
        if stats.packet_count < 5:
            # Let a few packets through so a legitimate session can start.
            return None
        if packet.protocol is PacketType.TCP and stats.syn_count > 3 and packet.bare_syn:
            logger.debug("Mode forteresse: Blocage préventif de l'IP %s", source)
            return Action.block(source, 300)

    if stats.packets_per_second > threshold_packets_per_second:
        logger.info(
            "Débit élevé détecté depuis l'IP %s: %.2f paquets/s",
            source,
            stats.packets_per_second,
        )
        if stats.packets_per_second > threshold_packets_per_second * 3.0:
            return Action.block(source, 600)
        return Action.rate_limit(source)

    if stats.tcp_count > 10:
        syn_ratio = stats.syn_count / stats.tcp_count
        if syn_ratio > threshold_syn_percentage:
            logger.warning("SYN flood suspecté depuis l'IP %s: ratio=%.2f", source, syn_ratio)
            return Action.block(source, 900)

    if stats.icmp_count > 50 and stats.packets_per_second > threshold_packets_per_second * 0.7:
        logger.warning("Flood ICMP suspecté depuis l'IP %s", source)
        return Action.block(source, 600)

    if packet.protocol is PacketType.TCP and stats.tcp_count > 20:
        tcp_share = stats.tcp_count / stats.packet_count if stats.packet_count else math.inf
        if tcp_share > 0.9:
            logger.warning("Scan de ports suspecté depuis l'IP %s", source)
            return Action.block(source, 1800)

    return None