# ts3perf/cli/args.py
from __future__ import annotations

import argparse
from typing import Any, Dict, Optional, Tuple

from ts3perf.app.config import DEFAULT_HOST, DEFAULT_QUERY_PORT, DEFAULT_TIMEOUT_S
from ts3perf.core.errors import CheckConfigError

PROG = "check_ts3"

DESCRIPTION = """\
TeamSpeak3 performance/health check

* all checks are optional, they run when a warning and/or critical limit is given
* without --virtualport, uptime and clients are checked globally; packet loss
  and ping require --virtualport
"""


class _PluginArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad input; monitoring plugins must report UNKNOWN."""

    def error(self, message: str):  # type: ignore[override]
        raise CheckConfigError(f"invalid arguments: {message}", hint=f"Run: {self.prog} --help")


# dest -> (config key, threshold level)
_THRESHOLD_FLAGS: Dict[str, Tuple[str, str]] = {
    "warning_packetloss": ("packet_loss", "warning"),
    "critical_packetloss": ("packet_loss", "critical"),
    "warning_ping": ("ping", "warning"),
    "critical_ping": ("ping", "critical"),
    "warning_clients": ("clients", "warning"),
    "critical_clients": ("clients", "critical"),
}

_PLAIN_FLAGS: Dict[str, str] = {
    "host": "host",
    "port": "port",
    "virtualport": "virtual_port",
    "timeout": "timeout_s",
    "minimal_uptime": "minimal_uptime",
    "username": "username",
    "password": "password",
}

_SWITCHES: Dict[str, str] = {
    "ignore_reserved_slots": "ignore_reserved_slots",
    "ignore_virtualserverstatus": "ignore_virtualserver_status",
    "debug": "debug",
}


def build_parser() -> argparse.ArgumentParser:
    # Every option defaults to None/False so that only flags actually given
    # override the config file.
    parser = _PluginArgumentParser(
        prog=PROG,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("--help", action="store_true", help="Show this help and exit (UNKNOWN).")

    conn = parser.add_argument_group("connection")
    conn.add_argument("--host", help=f"ServerQuery host (default: {DEFAULT_HOST}).")
    conn.add_argument("--port", type=int, help=f"ServerQuery port (default: {DEFAULT_QUERY_PORT}).")
    conn.add_argument("--virtualport", type=int, help="Port of the virtual server to check.")
    conn.add_argument("--timeout", type=float, help=f"Socket timeout in seconds (default: {DEFAULT_TIMEOUT_S:g}).")
    conn.add_argument("--username", help="ServerQuery login name (optional).")
    conn.add_argument("--password", help="ServerQuery login password.")
    conn.add_argument("--config", help="YAML file with defaults for any of these options.")

    thr = parser.add_argument_group("thresholds")
    thr.add_argument("--warning-packetloss", type=float, metavar="PERCENT")
    thr.add_argument("--critical-packetloss", type=float, metavar="PERCENT")
    thr.add_argument("--warning-ping", type=int, metavar="MS")
    thr.add_argument("--critical-ping", type=int, metavar="MS")
    thr.add_argument("--warning-clients", type=int, metavar="PERCENT")
    thr.add_argument("--critical-clients", type=int, metavar="PERCENT")
    thr.add_argument("--minimal-uptime", type=int, metavar="SECONDS")
    thr.add_argument(
        "--ignore-reserved-slots",
        action="store_true",
        help="Count reserved slots as free slots.",
    )
    thr.add_argument(
        "--ignore-virtualserverstatus",
        action="store_true",
        help="Report UNKNOWN instead of CRITICAL when the virtual server is offline.",
    )

    parser.add_argument("--debug", action="store_true", help="Trace the ServerQuery dialogue on stderr.")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """CheckConfig keyword overrides for the options that were given."""
    overrides: Dict[str, Any] = {}

    for dest, key in _PLAIN_FLAGS.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[key] = value

    for dest, key in _SWITCHES.items():
        if getattr(args, dest, False):
            overrides[key] = True

    for dest, (key, level) in _THRESHOLD_FLAGS.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides.setdefault(key, {})[level] = value

    return overrides


def parse_args(argv: Optional[list[str]] = None) -> Tuple[argparse.Namespace, Dict[str, Any]]:
    """
    Returns: (args, overrides)

    - overrides only holds options present on the command line
    - threshold overrides are {"warning": ..., "critical": ...} partial mappings
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    return args, overrides_from_args(args)
