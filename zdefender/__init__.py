"""DDoS detection: traffic statistics, attack heuristics, anomaly scoring and configuration."""

__version__ = "0.1.3"

__all__ = [
    "analyzer",
    "cli",
    "config",
    "detect_attacks",
    "intelligent_detection",
    "models",
    "tracking",
]