# ts3perf/core/severity.py
from __future__ import annotations

from enum import IntEnum


class Severity(IntEnum):
    """
    Monitoring states, ordered OK < WARNING < CRITICAL < UNKNOWN.

    The integer value is the plugin exit code.
    """

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3

    @property
    def label(self) -> str:
        return self.name
