# ts3perf/cli/main.py
from __future__ import annotations

import logging
import sys
from typing import Optional

from ts3perf.app.config_loader import build_config, load_config_file
from ts3perf.core.errors import Ts3CheckError
from ts3perf.core.severity import Severity

from ts3perf.cli.args import build_parser, parse_args
from ts3perf.cli.commands import cmd_check


def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    try:
        args, overrides = parse_args(argv)

        # no options at all behaves like --help
        if args.help or not argv:
            print(build_parser().format_help())
            return int(Severity.UNKNOWN)

        file_values = load_config_file(args.config) if args.config else None
        cfg = build_config(file_values=file_values, overrides=overrides)
        return cmd_check(cfg)
    except Ts3CheckError as e:
        print(f"{e.severity.label}: {e.message}")
        if e.hint:
            logging.getLogger(__name__).warning("Hint: %s", e.hint)
        return int(e.severity)
    except Exception as e:
        logging.getLogger(__name__).debug("UNHANDLED_ERROR", exc_info=True)
        print(f"UNKNOWN: script execution error: {e}")
        return int(Severity.UNKNOWN)
