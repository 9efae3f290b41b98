"""Packet analyzer keeping global and per-IP traffic statistics."""

from __future__ import annotations

import asyncio
import os
from dataclasses import replace
from typing import Dict, List, Optional, Tuple, Union

from zdefender.config import Config
from zdefender.models import GlobalStats, IpAddress, IpStats, PacketInfo, Report
from zdefender.tracking import DDoSDetectionStats, _to_ip


class Analyzer:
    """Accumulates statistics from analysed packets."""

    def __init__(
        self,
        config: Optional[Config] = None,
        report_queue: Optional["asyncio.Queue[Report]"] = None,
    ) -> None:
        self.config = config if config is not None else Config()
        self.report_queue = report_queue
        self._ip_stats: Dict[IpAddress, IpStats] = {}
        self._global_stats = GlobalStats()
        self._semaphore = asyncio.Semaphore((os.cpu_count() or 1) * 2)
        self._ddos_detector = DDoSDetectionStats()

    async def analyze_packet(self, packet: PacketInfo) -> IpStats:
        """Account for a packet and return a copy of its source's statistics."""
        async with self._semaphore:
            self._global_stats.total_packets += 1
            self._global_stats.total_bytes += packet.size
            stats = self._ip_stats.setdefault(packet.source_ip, IpStats())
            stats.update(packet)
            self._ddos_detector.process_ip(packet.source_ip)
            return replace(stats)

    async def get_total_packets(self) -> int:
        return self._global_stats.total_packets

    async def get_stats(self) -> Tuple[GlobalStats, List[Tuple[IpAddress, IpStats]]]:
        """Return copies of the global statistics and of every IP's statistics."""
        ip_stats = [(ip, replace(stats)) for ip, stats in self._ip_stats.items()]
        return replace(self._global_stats), ip_stats

    async def get_ip_stats(self, ip: Union[str, IpAddress]) -> Optional[IpStats]:
        stats = self._ip_stats.get(_to_ip(ip))
        return None if stats is None else replace(stats)