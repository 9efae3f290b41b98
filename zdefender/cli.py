"""Command-line argument parsing."""

from __future__ import annotations

import argparse
from enum import Enum
from typing import Callable, List, Optional, Sequence, Type, TypeVar

E = TypeVar("E", bound=Enum)


class Mode(Enum):
    """Operating mode of the service."""

    PASSIVE = "passive"
    ACTIVE = "active"


class RealtimeMode(Enum):
    ON = "on"
    OFF = "off"


class CliUpdateChannel(Enum):
    STABLE = "stable"
    BETA = "beta"
    DEV = "dev"


def _enum_arg(enum_cls: Type[E]) -> Callable[[str], E]:
    def convert(text: str) -> E:
        try:
            return enum_cls(text.lower())
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise argparse.ArgumentTypeError(
                f"invalid value {text!r} (choose from {allowed})"
            ) from None

    convert.__name__ = enum_cls.__name__.lower()
    return convert


def _metavar(enum_cls: Type[Enum]) -> str:
    return "{" + ",".join(member.value for member in enum_cls) + "}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zdefender", description="Un système de protection contre les attaques DDoS"
    )
    parser.add_argument("-V", "--version", action="version", version="%(prog)s 0.1.3")
    parser.add_argument(
        "-m", "--mode", type=_enum_arg(Mode), metavar=_metavar(Mode),
        help="Change le mode de fonctionnement de ZDefender",
    )
    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    start = sub.add_parser("start", help="Démarre le service ZDefender")
    start.add_argument("-d", "--daemon", action="store_true", help="Exécute en arrière-plan")

    sub.add_parser("stop", help="Arrête le service ZDefender")
    sub.add_parser("status", help="Affiche le statut actuel du service")

    fortress = sub.add_parser("fortress", help="Configure le mode forteresse")
    fortress.add_argument("-e", "--enable", action="store_true")
    fortress.add_argument("--disable", action="store_true")

    sub.add_parser("stats", help="Affiche les statistiques en temps réel")
    sub.add_parser("check", help="Affiche un rapport statique des statistiques basiques")
    sub.add_parser("detailed-stats", help="Affiche des statistiques détaillées")

    realtime = sub.add_parser("realtime", help="Active ou désactive les statistiques en temps réel")
    realtime.add_argument(
        "mode", nargs="?", type=_enum_arg(RealtimeMode), default=RealtimeMode.ON,
        metavar=_metavar(RealtimeMode),
    )

    secure = sub.add_parser("secure", help="Bloque tous les ports non essentiels")
    secure.add_argument("-p", "--ports", help="Ports à garder ouverts, séparés par des virgules")

    sub.add_parser("reload", help="Recharge la configuration")

    region = sub.add_parser("configure-region", help="Configure les scores de confiance régionaux")
    region.add_argument("region")
    region.add_argument("score", nargs="?", type=float, default=0.5)

    ip_info = sub.add_parser("ip-info", help="Consulte les informations sur une IP")
    ip_info.add_argument("ip")

    logs = sub.add_parser("logs", help="Affiche les logs du système")
    logs.add_argument("-l", "--lines", type=int)
    logs.add_argument("--level", help="error, warn, info, debug, trace")

    bench = sub.add_parser("benchmark", help="Lance un benchmark du système anti-DDoS")
    bench.add_argument("-p", "--packets", type=int, default=10000)
    bench.add_argument("-n", "--normal-ratio", type=float, default=0.8)
    bench.add_argument("-o", "--output")

    ddos = sub.add_parser("ddos-protection", help="Configure la protection DDoS distribuée")
    ddos.add_argument("-e", "--enable", action="store_true")
    ddos.add_argument("--disable", action="store_true")
    ddos.add_argument("--ratio", type=float)
    ddos.add_argument("--min-ips", type=int)
    ddos.add_argument("--packets-per-second", type=int)
    ddos.add_argument("--duration", type=int)
    ddos.add_argument("--auto-fortress", action="store_true")
    ddos.add_argument("--no-auto-fortress", action="store_true")

    update = sub.add_parser("update-settings", help="Configure les paramètres de mise à jour")
    update.add_argument("-e", "--enable", action="store_true")
    update.add_argument("--disable", action="store_true")
    update.add_argument(
        "--channel", type=_enum_arg(CliUpdateChannel), metavar=_metavar(CliUpdateChannel)
    )
    update.add_argument("--interval", type=int)
    update.add_argument("--check-now", action="store_true")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; exits with status 2 on invalid input."""
    args: Optional[List[str]] = None if argv is None else list(argv)
    return build_parser().parse_args(args)