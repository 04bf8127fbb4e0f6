from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Union

Value = Union[int, float]

# metric name -> PerfValue, insertion ordered
PerfRecord = Dict[str, "PerfValue"]


def format_number(value: Optional[Value]) -> str:
    """Render a number the way monitoring backends expect: 50.0 -> "50", None -> ""."""
    if value is None:
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _threshold(value: Optional[Value]) -> Optional[Value]:
    # 0 means "not configured"
    return value if value else None


@dataclass(frozen=True)
class PerfValue:
    value: Value
    unit: str = ""
    warning: Optional[Value] = None
    critical: Optional[Value] = None
    minimum: Optional[Value] = None

    def render(self, name: str) -> str:
        out = f"{name}={format_number(self.value)}{self.unit}"

        warn = _threshold(self.warning)
        crit = _threshold(self.critical)
        minimum = _threshold(self.minimum)

        if warn is None and crit is None and minimum is None:
            return out
        out += f";{format_number(warn)};{format_number(crit)}"
        if minimum is not None:
            out += f";{format_number(minimum)}"
        return out


def render_perfdata(perf: PerfRecord) -> str:
    return " ".join(v.render(name) for name, v in perf.items())

