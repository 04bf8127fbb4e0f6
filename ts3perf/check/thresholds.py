# ts3perf/check/thresholds.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from ts3perf.core.severity import Severity

from .fields import Number, floor_int, round_half_up, to_decimal
from .perfdata import PerfRecord, PerfValue, Value, format_number


@dataclass(frozen=True)
class ThresholdSpec:
    """Optional warning/critical boundaries for one metric; 0 or None = unset."""
    warning: Optional[Value] = None
    critical: Optional[Value] = None

    @property
    def active(self) -> bool:
        return bool(self.warning) or bool(self.critical)

    def exceeded(self, value: Union[Value, Decimal]) -> Severity:
        """Severity for `value > threshold`, critical checked first."""
        if self.critical and value > self.critical:
            return Severity.CRITICAL
        if self.warning and value > self.warning:
            return Severity.WARNING
        return Severity.OK


@dataclass(frozen=True)
class Verdict:
    severity: Severity
    message: str = ""
    perf: PerfRecord = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.severity == Severity.OK


def evaluate_uptime(uptime: int, minimal_uptime: int) -> Verdict:
    # inverted: a low value is bad
    perf = {"uptime": PerfValue(uptime, "s", minimum=minimal_uptime)}
    if minimal_uptime and uptime < minimal_uptime:
        return Verdict(
            Severity.CRITICAL,
            f"uptime is {uptime} seconds (threshold min = {minimal_uptime})",
            perf,
        )
    return Verdict(Severity.OK, perf=perf)


def evaluate_packet_loss(value: Number, spec: ThresholdSpec) -> Verdict:
    packetloss = round_half_up(value, 2)
    perf = {"packetloss": PerfValue(packetloss, "%", spec.warning, spec.critical)}
    severity = spec.exceeded(packetloss)
    if severity != Severity.OK:
        return Verdict(severity, f"average client packetloss {format_number(packetloss)}%", perf)
    return Verdict(Severity.OK, perf=perf)


def evaluate_ping(value: Number, spec: ThresholdSpec) -> Verdict:
    ping = round_half_up(value, 0)
    perf = {"ping": PerfValue(ping, "ms", spec.warning, spec.critical)}
    severity = spec.exceeded(ping)
    if severity != Severity.OK:
        return Verdict(severity, f"average client ping {format_number(ping)} ms", perf)
    return Verdict(Severity.OK, perf=perf)


def client_percentage(current: int, usable: int) -> float:
    """current / usable in percent, one decimal, rounded half up. `usable` must be non-zero."""
    return round_half_up(to_decimal(current) * 100 / to_decimal(usable), 1)


def evaluate_client_percentage(
    current: int,
    max_clients: int,
    reserved_slots: int,
    spec: ThresholdSpec,
    *,
    ignore_reserved_slots: bool = False,
) -> Verdict:
    perf: PerfRecord = {
        "connectedclients": PerfValue(current),
        "reservedslots": PerfValue(reserved_slots),
        "maxclients": PerfValue(max_clients),
    }

    usable = max_clients if ignore_reserved_slots else max_clients - reserved_slots

    if max_clients == 0:
        return Verdict(Severity.CRITICAL, "maximum allowed clients on server is zero", perf)
    if usable == 0:
        return Verdict(
            Severity.CRITICAL,
            f"all server slots are reserved ({reserved_slots}/{max_clients})",
            perf,
        )

    percentage = client_percentage(current, usable)
    perf["clientpercentage"] = PerfValue(percentage, "%", spec.warning, spec.critical)

    message = f"number of clients reached {format_number(percentage)}% - {current}/{max_clients}"
    if reserved_slots > 0:
        message += f" ({reserved_slots} reserved)"

    # rounded for display, floored for comparison
    severity = spec.exceeded(floor_int(percentage))
    if severity != Severity.OK:
        return Verdict(severity, message, perf)
    return Verdict(Severity.OK, perf=perf)


def evaluate_virtual_status(status: str, port: int, *, ignore_virtual_status: bool = False) -> Verdict:
    if status == "online":
        return Verdict(Severity.OK)
    severity = Severity.UNKNOWN if ignore_virtual_status else Severity.CRITICAL
    return Verdict(severity, f"virtualserver {port} has status {status or 'unknown'}")
