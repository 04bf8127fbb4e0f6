# ts3perf/check/orchestrator.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Optional

from ts3perf.app.config import CheckConfig
from ts3perf.core.errors import CommandFailedError, Ts3CheckError
from ts3perf.core.severity import Severity
from ts3perf.protocol.client import ServerQueryClient
from ts3perf.protocol.decoder import DecodedResponse
from ts3perf.protocol.escape import unescape

from .fields import require_field, require_int, require_number
from .humanize import seconds_to_time_ago
from .perfdata import PerfRecord, render_perfdata
from .thresholds import (
    Verdict,
    evaluate_client_percentage,
    evaluate_packet_loss,
    evaluate_ping,
    evaluate_uptime,
    evaluate_virtual_status,
)


class CheckState(Enum):
    DISCONNECTED = 0
    CONNECTED = 1
    SERVER_SELECTED = 2
    EVALUATED = 3
    REPORTED = 4


@dataclass(frozen=True)
class Report:
    severity: Severity
    message: str
    perf: PerfRecord = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return int(self.severity)

    def render(self) -> str:
        line = f"{self.severity.label}: {self.message}"
        # UNKNOWN never carries performance data
        if self.perf and self.severity != Severity.UNKNOWN:
            line += "|" + render_perfdata(self.perf)
        return line


class CheckOrchestrator:
    """
    Runs one health check: connect, fetch, evaluate, report.

    Evaluation stops at the first non-OK verdict. The connection is released
    on every path out of run().
    """

    def __init__(
        self,
        config: CheckConfig,
        *,
        client: Optional[ServerQueryClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._client = client or ServerQueryClient(logger=self._log)

        self._state = CheckState.DISCONNECTED
        self._perf: PerfRecord = {}
        self._status = ""

    @property
    def state(self) -> CheckState:
        return self._state

    @property
    def config(self) -> CheckConfig:
        return self._config

    def _advance(self, new: CheckState) -> None:
        if new.value <= self._state.value:
            raise RuntimeError(f"invalid check transition {self._state.name} -> {new.name}")
        self._log.debug("CHECK_STATE %s -> %s", self._state.name, new.name)
        self._state = new

    # ---------------- Run ----------------
    def run(self) -> Report:
        if self._state != CheckState.DISCONNECTED:
            raise RuntimeError("a CheckOrchestrator runs only once")

        try:
            report = self._run()
        except Ts3CheckError as e:
            self._log.debug("CHECK_FAILED code=%s msg=%s details=%s", e.code, e.message, e.details)
            report = Report(e.severity, e.message, dict(self._perf))
        finally:
            self._client.disconnect()
            self._advance(CheckState.REPORTED)

        self._log.debug("CHECK_REPORT severity=%s", report.severity.label)
        return report

    def _run(self) -> Report:
        cfg = self._config
        cfg.validate()

        self._client.connect(cfg.host, cfg.port, cfg.timeout_s)
        self._advance(CheckState.CONNECTED)

        if cfg.username:
            self._login(cfg.username, cfg.password or "")

        if cfg.virtual_mode:
            verdicts = self._virtual_server_verdicts()
        else:
            verdicts = self._global_verdicts()

        for verdict in verdicts:
            self._perf.update(verdict.perf)
            if not verdict.ok:
                self._advance(CheckState.EVALUATED)
                return Report(verdict.severity, verdict.message, dict(self._perf))

        self._advance(CheckState.EVALUATED)
        return Report(Severity.OK, self._status, dict(self._perf))

    def _login(self, username: str, password: str) -> None:
        resp = self._client.login(username, password)
        if not resp.succeeded:
            raise CommandFailedError(
                f"login failed for user {username}: {resp.describe_error()}",
                severity=Severity.UNKNOWN,
                raw=resp.raw,
            )

    # ---------------- Global (instance) checks ----------------
    def _global_verdicts(self) -> Iterator[Verdict]:
        cfg = self._config

        resp = self._client.get_global_host_info()
        if not resp.succeeded:
            raise CommandFailedError(
                f"error while fetching global host info - {resp.describe_error()}",
                severity=Severity.CRITICAL,
                raw=resp.raw,
            )
        info = resp.fields

        uptime = self._int(resp, "instance_uptime", "malformed instance output, unable to parse uptime")
        self._status = f"teamspeak3 is running for {seconds_to_time_ago(uptime)}"

        if cfg.minimal_uptime:
            yield evaluate_uptime(uptime, cfg.minimal_uptime)

        if cfg.clients.active:
            msg = "malformed clientinfo output, unable to parse client amount"
            max_clients = self._int(resp, "virtualservers_total_maxclients", msg)
            current = self._int(resp, "virtualservers_total_clients_online", msg)
            self._status = (
                f"ts3 has {current}/{max_clients} clients online "
                f"and is running for {seconds_to_time_ago(uptime)}"
            )
            yield evaluate_client_percentage(
                current,
                max_clients,
                0,
                cfg.clients,
                ignore_reserved_slots=cfg.ignore_reserved_slots,
            )

        self._log.debug("GLOBAL_CHECKS_DONE fields=%d", len(info))

    # ---------------- Virtual server checks ----------------
    def _virtual_server_verdicts(self) -> Iterator[Verdict]:
        cfg = self._config
        port = cfg.virtual_port

        resp = self._client.select_virtual_server(port)
        if not resp.succeeded:
            raise CommandFailedError(
                f"unable to select virtualserver with port {port}: {resp.describe_error()}",
                severity=Severity.UNKNOWN,
                raw=resp.raw,
            )
        self._advance(CheckState.SERVER_SELECTED)

        resp = self._client.get_server_info()
        if not resp.succeeded:
            raise CommandFailedError(
                f"error while fetching server info for virtualserver with port {port}: "
                f"{resp.describe_error()}",
                severity=Severity.UNKNOWN,
                raw=resp.raw,
            )
        info = resp.fields

        status = evaluate_virtual_status(
            info.get("virtualserver_status", ""),
            port,
            ignore_virtual_status=cfg.ignore_virtualserver_status,
        )
        yield status

        name = unescape(
            require_field(
                info,
                "virtualserver_name",
                "malformed instance output, unable to parse virtualservername",
                raw=resp.raw,
            )
        )
        uptime = self._int(resp, "virtualserver_uptime", "malformed instance output, unable to parse uptime")
        self._status = f"{name} has been running for {seconds_to_time_ago(uptime)}"

        if cfg.packet_loss.active:
            value = self._number(
                resp,
                "virtualserver_total_packetloss_total",
                "malformed serverinfo, unable to parse packetloss",
            )
            yield evaluate_packet_loss(value, cfg.packet_loss)

        if cfg.ping.active:
            value = self._number(resp, "virtualserver_total_ping", "malformed clientinfo output, unable to parse ping")
            yield evaluate_ping(value, cfg.ping)

        if cfg.minimal_uptime:
            yield evaluate_uptime(uptime, cfg.minimal_uptime)

        if cfg.clients.active:
            msg = "malformed clientinfo output, unable to parse client amount"
            max_clients = self._int(resp, "virtualserver_maxclients", msg)
            current = self._int(resp, "virtualserver_clientsonline", msg)
            reserved = self._int(resp, "virtualserver_reserved_slots", msg)
            self._status = (
                f"{name} has {current}/{max_clients} clients online "
                f"and is running for {seconds_to_time_ago(uptime)}"
            )
            yield evaluate_client_percentage(
                current,
                max_clients,
                reserved,
                cfg.clients,
                ignore_reserved_slots=cfg.ignore_reserved_slots,
            )

    # ---------------- Field helpers ----------------
    def _number(self, resp: DecodedResponse, key: str, message: str) -> str:
        self._trace_fields(resp.fields, key)
        return require_number(resp.fields, key, message, raw=resp.raw)

    def _int(self, resp: DecodedResponse, key: str, message: str) -> int:
        self._trace_fields(resp.fields, key)
        return require_int(resp.fields, key, message, raw=resp.raw)

    def _trace_fields(self, fields: Mapping[str, str], key: str) -> None:
        if key not in fields:
            self._log.debug("FIELD_MISSING key=%s available=%s", key, sorted(fields))
