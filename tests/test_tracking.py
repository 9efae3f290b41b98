import time
from ipaddress import ip_address
from unittest import mock

import pytest

from zdefender.tracking import (
    DDoSDetectionStats,
    EstablishedConnection,
    IpRate,
    PacketDirection,
    SecurityStats,
    SyscallPacket,
)


def test_security_stats_increment_attacks():
    stats = SecurityStats()
    stats.increment_attacks()
    stats.increment_attacks()
    assert stats.attacks_detected == 2


def test_security_stats_time_since_update():
    stats = SecurityStats(last_update=time.time() - 100)
    assert stats.time_since_update() >= 100
    future = SecurityStats(last_update=time.time() + 1000)
    assert future.time_since_update() == 0.0


def test_ddos_defaults_from_source():
    stats = DDoSDetectionStats()
    assert stats.threshold_ratio == 50.0
    assert stats.threshold_min_ips == 50
    assert stats.threshold_packets_per_second == 5000
    assert stats.attack_in_progress is False


def test_process_ip_counts_totals_and_unique():
    stats = DDoSDetectionStats()
    for ip in ["10.0.0.1", "10.0.0.1", "10.0.0.2"]:
        stats.process_ip(ip)
    assert stats.total_packets_1s == 3
    assert stats.total_packets_10s == 3
    assert stats.total_packets_60s == 3
    assert stats.unique_ips_1s == 2
    assert stats.unique_ips_10s == 2
    assert stats.unique_ips_60s == 2


def test_process_ip_accepts_address_objects():
    stats = DDoSDetectionStats()
    stats.process_ip(ip_address("10.0.0.1"))
    stats.process_ip("10.0.0.1")
    assert stats.unique_ips_10s == 1


def test_short_window_resets_after_span():
    stats = DDoSDetectionStats()
    stats.process_ip("10.0.0.1")
    later = time.time() + 2
    with mock.patch("time.time", return_value=later):
        stats.process_ip("10.0.0.2")
    assert stats.total_packets_1s == 1
    assert stats.unique_ips_1s == 1
    assert stats.total_packets_10s == 2
    assert stats.total_packets_60s == 2


def _flood(stats, ips, per_ip):
    for ip in ips:
        for _ in range(per_ip):
            stats.process_ip(ip)


def test_no_attack_below_thresholds():
    stats = DDoSDetectionStats()
    _flood(stats, ["10.0.0.1", "10.0.0.2"], 5)
    assert stats.is_ddos_attack_in_progress() is False
    assert stats.get_attack_details() is None


def test_attack_detected_with_low_thresholds():
    stats = DDoSDetectionStats()
    stats.set_thresholds(1.0, 2, 1)
    _flood(stats, ["10.0.0.1", "10.0.0.2"], 10)
    assert stats.is_ddos_attack_in_progress() is True
    assert stats.attack_in_progress is True
    assert stats.attack_start_time is not None
    assert 0.0 < stats.attack_intensity <= 1.0

    details = stats.get_attack_details()
    assert details.unique_ips == stats.unique_ips_10s
    assert details.packets_per_second == stats.total_packets_10s // 10
    assert details.intensity == stats.attack_intensity
    assert details.start_time == stats.attack_start_time


def test_attack_persists_for_grace_period():
    stats = DDoSDetectionStats()
    stats.set_thresholds(1.0, 2, 1)
    _flood(stats, ["10.0.0.1", "10.0.0.2"], 10)
    assert stats.is_ddos_attack_in_progress()
    stats.set_thresholds(1000.0, 2, 1)
    assert stats.is_ddos_attack_in_progress() is True
    assert stats.attack_in_progress is True


def test_attack_ends_after_grace_period():
    stats = DDoSDetectionStats()
    stats.set_thresholds(1.0, 2, 1)
    _flood(stats, ["10.0.0.1", "10.0.0.2"], 10)
    assert stats.is_ddos_attack_in_progress()
    stats.set_thresholds(1000.0, 2, 1)
    stats.attack_start_time = time.time() - 30
    assert stats.is_ddos_attack_in_progress() is False
    assert stats.attack_in_progress is False
    assert stats.attack_start_time is None
    assert stats.attack_intensity == 0.0


def test_set_thresholds():
    stats = DDoSDetectionStats()
    stats.set_thresholds(12.5, 7, 300)
    assert (stats.threshold_ratio, stats.threshold_min_ips, stats.threshold_packets_per_second) == (
        12.5,
        7,
        300,
    )


def test_established_connection_defaults():
    conn = EstablishedConnection("192.168.1.10")
    assert conn.ip == ip_address("192.168.1.10")
    assert conn.packet_count == 1
    assert conn.trust_score == 0.5
    assert conn.is_established is False
    assert conn.last_activity == conn.created_at


def test_update_activity_establishes_connection():
    conn = EstablishedConnection("192.168.1.10")
    for _ in range(4):
        conn.update_activity()
    assert conn.is_established is False
    conn.update_activity()
    assert conn.packet_count == 6
    assert conn.is_established is True
    assert conn.trust_score == pytest.approx(0.55)


def test_update_activity_trust_stops_at_cap():
    conn = EstablishedConnection("192.168.1.10", trust_score=0.95)
    conn.update_activity()
    assert conn.trust_score == 0.95


def test_add_request_type_deduplicates():
    conn = EstablishedConnection("192.168.1.10")
    conn.add_request_type("GET")
    conn.add_request_type("POST")
    conn.add_request_type("GET")
    assert conn.request_types == ["GET", "POST"]


def test_inactivity_and_age():
    now = time.time()
    conn = EstablishedConnection("192.168.1.10", created_at=now - 200, last_activity=now - 100)
    assert conn.connection_age() >= 200
    assert conn.inactivity_duration() >= 100
    assert conn.is_inactive_for(50) is True
    assert conn.is_inactive_for(1000) is False


def test_ip_rate_and_syscall_packet_normalise_ips():
    rate = IpRate("10.1.1.1")
    assert rate.ip == ip_address("10.1.1.1")
    assert rate.packets_per_second == 0.0
    packet = SyscallPacket("10.1.1.1", "::1", 6, 60, "eth0", PacketDirection.INBOUND)
    assert packet.dest_ip == ip_address("::1")
    assert packet.direction is PacketDirection.INBOUND