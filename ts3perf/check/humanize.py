from __future__ import annotations

from typing import Union

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def seconds_to_time_ago(seconds: Union[int, float, str]) -> str:
    """
    Largest whole unit of a duration: 45 -> "45 seconds", 3661 -> "1 hour".
    """
    total = int(float(seconds))

    if total < SECONDS_PER_MINUTE:
        return _plural(total, "second")
    if total < SECONDS_PER_HOUR:
        return _plural(total // SECONDS_PER_MINUTE, "minute")
    if total < SECONDS_PER_DAY:
        return _plural(total // SECONDS_PER_HOUR, "hour")
    return _plural(total // SECONDS_PER_DAY, "day")
