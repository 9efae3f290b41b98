import asyncio
import statistics
import time
from ipaddress import ip_address

import pytest

from zdefender.config import Config
from zdefender.intelligent_detection import BehaviorProfile, IntelligentDetector
from zdefender.models import ActionKind, IpStats, PacketInfo, PacketType, ReportType

SOURCE = ip_address("10.0.0.1")


def _packet(protocol=PacketType.TCP, source=SOURCE):
    return PacketInfo(source_ip=source, dest_ip="192.168.1.100", protocol=protocol, size=100)


def _stats(count, seconds=0.0, blocked=False):
    now = time.time()
    return IpStats(packet_count=count, first_seen=now - seconds, last_seen=now, is_blocked=blocked)


def test_packet_rate_mean_and_stdev():
    profile = BehaviorProfile()
    rates = [2.0, 4.0, 9.0, 1.5]
    for rate in rates:
        profile.update_packet_rate(rate)
    assert profile.mean_rate == pytest.approx(statistics.fmean(rates))
    assert profile.std_deviation == pytest.approx(statistics.stdev(rates))


def test_packet_rate_history_capped_at_twenty():
    profile = BehaviorProfile()
    rates = [float(i) for i in range(25)]
    for rate in rates:
        profile.update_packet_rate(rate)
    assert list(profile.packet_rates) == rates[-20:]
    assert profile.mean_rate == pytest.approx(statistics.fmean(rates[-20:]))


def test_single_rate_leaves_deviation_zero():
    profile = BehaviorProfile()
    profile.update_packet_rate(7.0)
    assert profile.mean_rate == 7.0
    assert profile.std_deviation == 0.0


def test_protocol_distribution_sums_to_one():
    profile = BehaviorProfile()
    for name in ["TCP", "UDP", "TCP", "ICMP", "TCP", "OTHER"]:
        profile.update_protocol_distribution(name)
        assert sum(profile.protocol_distribution.values()) == pytest.approx(1.0)
    assert set(profile.protocol_distribution) == {"TCP", "UDP", "ICMP", "OTHER"}
    assert profile.protocol_distribution["TCP"] > profile.protocol_distribution["UDP"]


def test_empty_profile_low_rate_scores_zero():
    profile = BehaviorProfile()
    assert profile.calculate_anomaly_score(5.0) == 0.0


def test_icmp_dominance_scores_thirty():
    profile = BehaviorProfile()
    profile.update_protocol_distribution("ICMP")
    score = profile.calculate_anomaly_score(1.0)
    assert score == 30.0
    assert profile.anomaly_score == score


def test_high_rate_raises_score():
    low = BehaviorProfile()
    high = BehaviorProfile()
    assert high.calculate_anomaly_score(5000.0) > low.calculate_anomaly_score(10.0)


def test_statistical_outlier_raises_score_and_stays_bounded():
    profile = BehaviorProfile()
    for rate in [10.0, 12.0] * 5:
        profile.update_packet_rate(rate)
    profile.update_protocol_distribution("TCP")
    baseline = BehaviorProfile()
    baseline.update_protocol_distribution("TCP")
    outlier = profile.calculate_anomaly_score(500.0)
    assert outlier > baseline.calculate_anomaly_score(500.0)
    assert 0.0 <= outlier <= 100.0


@pytest.mark.asyncio
async def test_analyze_packet_without_stats_returns_none_but_profiles():
    detector = IntelligentDetector()
    result = await detector.analyze_packet(_packet(), {})
    assert result is None
    assert detector.behavior_profiles[SOURCE].protocol_distribution == {"TCP": 1.0}


@pytest.mark.asyncio
async def test_analyze_packet_returns_normalised_score():
    detector = IntelligentDetector()
    result = await detector.analyze_packet(_packet(PacketType.UDP), {SOURCE: _stats(3)})
    profile = detector.behavior_profiles[SOURCE]
    assert result == pytest.approx(profile.anomaly_score / 100.0)
    assert list(profile.packet_rates) == [3.0]


@pytest.mark.asyncio
async def test_analyze_packet_rate_uses_whole_seconds():
    detector = IntelligentDetector()
    await detector.analyze_packet(_packet(), {SOURCE: _stats(40, seconds=4.5)})
    assert list(detector.behavior_profiles[SOURCE].packet_rates) == [10.0]


@pytest.mark.asyncio
async def test_anomaly_over_threshold_sends_report():
    queue = asyncio.Queue()
    config = Config(block_duration=1234)
    detector = IntelligentDetector(config, queue)
    detector.anomaly_threshold = 20.0
    score = await detector.analyze_packet(_packet(PacketType.ICMP), {SOURCE: _stats(2)})
    assert score * 100.0 > detector.anomaly_threshold
    report = queue.get_nowait()
    assert report.report_type is ReportType.ALERT
    assert report.source_ip == SOURCE
    assert report.severity == 6
    assert "ALERTE MOYENNE" in report.message
    assert str(SOURCE) in report.message
    assert report.suggested_action.kind is ActionKind.BLOCK
    assert report.suggested_action.ip == SOURCE
    assert report.suggested_action.duration == 1234


@pytest.mark.asyncio
async def test_score_under_threshold_sends_nothing():
    queue = asyncio.Queue()
    detector = IntelligentDetector(report_queue=queue)
    await detector.analyze_packet(_packet(PacketType.ICMP), {SOURCE: _stats(2)})
    assert queue.empty()


def test_adjust_threshold_bounds():
    detector = IntelligentDetector()
    for _ in range(20):
        detector.adjust_threshold(3, 1)
    assert detector.anomaly_threshold == 95.0
    for _ in range(30):
        detector.adjust_threshold(0, 4)
    assert detector.anomaly_threshold == 50.0


def test_adjust_threshold_balanced_feedback_is_ignored():
    detector = IntelligentDetector()
    before = detector.anomaly_threshold
    detector.adjust_threshold(2, 2)
    assert detector.anomaly_threshold == before


def test_update_baseline_is_rate_limited():
    detector = IntelligentDetector()
    detector.update_baseline({SOURCE: _stats(600, seconds=600)})
    assert len(detector.baseline_profile.packet_rates) == 0


def test_update_baseline_averages_eligible_ips():
    detector = IntelligentDetector()
    detector.last_baseline_update = time.time() - 4000
    stats = {
        ip_address("10.0.0.1"): _stats(600, seconds=600),
        ip_address("10.0.0.2"): _stats(1800, seconds=600),
        ip_address("10.0.0.3"): _stats(99999, seconds=600, blocked=True),
        ip_address("10.0.0.4"): _stats(99999, seconds=10),
    }
    detector.update_baseline(stats)
    assert list(detector.baseline_profile.packet_rates) == [pytest.approx(2.0)]
    assert time.time() - detector.last_baseline_update < 5


def test_copy_shares_profiles_and_resets_baseline():
    detector = IntelligentDetector()
    detector.anomaly_threshold = 80.0
    detector.baseline_profile.update_packet_rate(3.0)
    clone = detector.copy()
    assert clone.behavior_profiles is detector.behavior_profiles
    assert clone.config is detector.config
    assert clone.anomaly_threshold == 80.0
    assert clone.last_baseline_update == detector.last_baseline_update
    assert len(clone.baseline_profile.packet_rates) == 0