# zdefender

Building blocks for spotting denial-of-service traffic. The package keeps
per-address traffic statistics, applies rule-based attack heuristics
(high packet rates, SYN floods, ICMP floods, port scans), scores
behaviour for statistical anomalies, detects distributed attacks spread
over many source addresses, and stores its settings as JSON.

It has no dependencies outside the standard library.

## Modules

| Module | Contents |
| --- | --- |
| `zdefender.models` | `PacketInfo`, `PacketType`, `Action` / `ActionKind`, `Report` / `ReportType`, `IpStats`, `BlockedIp`, `GlobalStats`, `LogMode` |
| `zdefender.detect_attacks` | `detect_attacks(packet, stats, threshold_packets_per_second, threshold_syn_percentage, fortress_mode)` |
| `zdefender.tracking` | `DDoSDetectionStats`, `EstablishedConnection`, `SecurityStats`, `IpRate`, `IpState`, `PacketDirection`, `SyscallPacket` |
| `zdefender.config` | `Config`, `UpdateConfig`, `ServiceState`, `UpdateChannel`, `ConfigError` |
| `zdefender.analyzer` | `Analyzer`: collects global and per-IP statistics from packets |
| `zdefender.intelligent_detection` | `BehaviorProfile` and `IntelligentDetector`: anomaly scoring and alert reports |
| `zdefender.cli` | `build_parser()` and `parse_args(argv)`: the command-line argument parser |

Timestamps are POSIX seconds and durations are seconds throughout.
IP addresses may be given as strings; they are stored as `ipaddress`
objects.

## Rule-based detection

```python
from zdefender.models import IpStats, PacketInfo, PacketType
from zdefender.detect_attacks import detect_attacks

packet = PacketInfo(source_ip="203.0.113.5", dest_ip="192.0.2.1",
                    protocol=PacketType.TCP, size=60)
stats = IpStats(packets_per_second=700.0)

action = detect_attacks(packet, stats, 200.0, 0.8, False)
print(action.kind, action.duration)   # ActionKind.BLOCK 600
```

A rate above the threshold gives `Action.rate_limit(ip)`; above three
times the threshold the address is blocked for 600 seconds. SYN floods,
ICMP floods and port scans give blocks of 900, 600 and 1800 seconds. In
fortress mode, a bare SYN from an address that has already sent more
than three is blocked for 300 seconds.

## Collecting statistics

```python
import asyncio
from zdefender.analyzer import Analyzer
from zdefender.models import PacketInfo, PacketType

async def main():
    analyzer = Analyzer()
    packet = PacketInfo(source_ip="198.51.100.7", dest_ip="192.0.2.1",
                        protocol=PacketType.UDP, size=512)
    stats = await analyzer.analyze_packet(packet)
    print(stats.packet_count, await analyzer.get_total_packets())   # 1 1

asyncio.run(main())
```

## Behavioural scoring

```python
from zdefender.intelligent_detection import BehaviorProfile

profile = BehaviorProfile()
for rate in (10.0, 11.0, 9.0, 10.0, 10.5):
    profile.update_packet_rate(rate)
    profile.update_protocol_distribution("UDP")

print(profile.calculate_anomaly_score(500.0))   # 40.0
```

`IntelligentDetector.analyze_packet` keeps one profile per source
address and, when a score exceeds its threshold (70 by default), puts an
alert `Report` suggesting a block on the `asyncio.Queue` it was given.

## Distributed attacks

`DDoSDetectionStats.process_ip(ip)` counts packets over 1, 10 and 60
second windows. `is_ddos_attack_in_progress()` looks at the 10-second
window against `threshold_ratio`, `threshold_min_ips` and
`threshold_packets_per_second`, and `get_attack_details()` returns the
start time, duration, intensity, distinct addresses and packets per
second of an attack in progress.

## Configuration

```python
from zdefender.config import Config

config = Config.load("/tmp/zdefender/config.json")   # written with defaults if missing
config.set_region_trust("EU", 0.8)                    # clamped to 0.0..1.0
print(config.get_region_trust("XX"))                  # 0.5 when not configured
print(config.should_auto_block(0.1))                  # True with the default threshold 0.2
config.save("/tmp/zdefender/config.json")
```

Without a path, `load` and `save` use `/etc/zdefender/config.json`.
Malformed or incomplete files raise `ConfigError`.

## Command-line arguments

`zdefender.cli.parse_args` parses the service's command line
(`start`, `stop`, `status`, `fortress`, `stats`, `check`,
`detailed-stats`, `realtime`, `secure`, `reload`, `configure-region`,
`ip-info`, `logs`, `benchmark`, `ddos-protection`, `update-settings`,
and the global `--mode`) into an `argparse.Namespace`:

```python
from zdefender.cli import parse_args

args = parse_args(["ddos-protection", "--enable", "--min-ips", "20"])
print(args.command, args.enable, args.min_ips)   # ddos-protection True 20
```

## What the package does not do

- It does not capture packets; callers build `PacketInfo` values themselves.
- It does not touch a firewall: actions such as blocking or fortress mode
  are returned as `Action` values and suggested in reports, never applied.
- It does not write log files or system-journal entries.
- It installs no command: the argument parser exists, but nothing carries
  out the parsed commands.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.