# ts3perf/cli/commands.py
from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from ts3perf.app.config import CheckConfig
from ts3perf.check.orchestrator import CheckOrchestrator, Report
from ts3perf.protocol.client import ServerQueryClient

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"


# ---------------- Logging ----------------

def configure_logging(*, debug: bool, stream: Optional[TextIO] = None) -> None:
    """
    Attach a stderr handler to the root logger (idempotent).

    stdout is reserved for the status line, so diagnostics never go there.
    """
    root = logging.getLogger()
    target = stream if stream is not None else sys.stderr

    handler: Optional[logging.StreamHandler] = None
    for h in root.handlers:
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is target:
            handler = h
            break

    if handler is None:
        handler = logging.StreamHandler(target)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        root.addHandler(handler)

    level = logging.DEBUG if debug else logging.WARNING
    handler.setLevel(level)
    root.setLevel(level)


# ---------------- Commands ----------------

def cmd_check(
    cfg: CheckConfig,
    *,
    client: Optional[ServerQueryClient] = None,
    out: Optional[TextIO] = None,
) -> int:
    configure_logging(debug=cfg.debug)

    report: Report = CheckOrchestrator(cfg, client=client).run()
    print(report.render(), file=out or sys.stdout)
    return report.exit_code
