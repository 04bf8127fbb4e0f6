from __future__ import annotations

import pytest

from ts3perf.app.config import CheckConfig
from ts3perf.check.orchestrator import CheckOrchestrator, CheckState, Report
from ts3perf.check.perfdata import PerfValue
from ts3perf.check.thresholds import ThresholdSpec
from ts3perf.core.errors import ConnectError
from ts3perf.core.severity import Severity
from ts3perf.protocol.decoder import decode_response

OK = "\n\rerror id=0 msg=ok\n\r"

HOSTINFO = (
    "instance_uptime=90061 host_timestamp_utc=1700000000 virtualservers_running_total=1 "
    "virtualservers_total_maxclients=100 virtualservers_total_clients_online=45" + OK
)

SERVERINFO = (
    "virtualserver_name=My\\sServer virtualserver_status=online virtualserver_uptime=7200 "
    "virtualserver_maxclients=50 virtualserver_clientsonline=20 virtualserver_reserved_slots=10 "
    "virtualserver_total_packetloss_total=0.0123 virtualserver_total_ping=35.6" + OK
)


class FakeClient:
    """Stands in for ServerQueryClient; replies are raw ServerQuery text."""
    def __init__(self, *, hostinfo=HOSTINFO, use="error id=0 msg=ok\n\r", serverinfo=SERVERINFO,
                 login="error id=0 msg=ok\n\r", connect_error=None):
        self.replies = {"hostinfo": hostinfo, "use": use, "serverinfo": serverinfo, "login": login}
        self.connect_error = connect_error
        self.calls = []
        self.disconnects = 0

    def connect(self, host, port, timeout=10.0):
        self.calls.append(("connect", host, port, timeout))
        if self.connect_error is not None:
            raise self.connect_error

    def disconnect(self):
        self.disconnects += 1

    def login(self, username, password):
        self.calls.append(("login", username, password))
        return decode_response(self.replies["login"])

    def select_virtual_server(self, port):
        self.calls.append(("use", port))
        return decode_response(self.replies["use"])

    def get_server_info(self):
        self.calls.append(("serverinfo",))
        return decode_response(self.replies["serverinfo"])

    def get_global_host_info(self):
        self.calls.append(("hostinfo",))
        return decode_response(self.replies["hostinfo"])


def _run(client=None, **cfg):
    client = client or FakeClient()
    orch = CheckOrchestrator(CheckConfig(**cfg), client=client)
    return orch.run(), orch, client


# ---------------- Report ----------------

def test_report_render_and_exit_code():
    r = Report(Severity.WARNING, "average client ping 121 ms", {"ping": PerfValue(121, "ms", 100, 200)})
    assert r.render() == "WARNING: average client ping 121 ms|ping=121ms;100;200"
    assert r.exit_code == 1


def test_report_unknown_never_has_perf():
    r = Report(Severity.UNKNOWN, "virtualserver 1 has status offline", {"ping": PerfValue(1)})
    assert r.render() == "UNKNOWN: virtualserver 1 has status offline"


def test_report_without_perf_has_no_pipe():
    assert Report(Severity.OK, "fine").render() == "OK: fine"


# ---------------- Global mode ----------------

def test_global_uptime_only():
    report, orch, client = _run()

    assert report.severity == Severity.OK
    assert report.message == "teamspeak3 is running for 1 day"
    assert report.perf == {}
    assert client.calls == [("connect", "localhost", 10011, 10.0), ("hostinfo",)]
    assert orch.state == CheckState.REPORTED
    assert client.disconnects == 1


def test_global_clients_ok():
    report, _, _ = _run(clients=ThresholdSpec(warning=80, critical=90), minimal_uptime=60)

    assert report.severity == Severity.OK
    assert report.message == "ts3 has 45/100 clients online and is running for 1 day"
    assert report.render() == (
        "OK: ts3 has 45/100 clients online and is running for 1 day"
        "|uptime=90061s;;;60 connectedclients=45 reservedslots=0 maxclients=100"
        " clientpercentage=45%;80;90"
    )


def test_global_clients_warning():
    report, _, _ = _run(clients=ThresholdSpec(warning=40, critical=90))

    assert report.severity == Severity.WARNING
    assert report.message == "number of clients reached 45% - 45/100"
    assert report.exit_code == 1


def test_global_uptime_breach_stops_before_clients():
    client = FakeClient(hostinfo="instance_uptime=30 virtualservers_total_maxclients=100" + OK)
    report, _, _ = _run(client, minimal_uptime=60, clients=ThresholdSpec(warning=80))

    # client fields are missing, but the uptime verdict comes first
    assert report.severity == Severity.CRITICAL
    assert report.message == "uptime is 30 seconds (threshold min = 60)"
    assert report.render().endswith("|uptime=30s;;;60")


def test_global_hostinfo_error_is_critical():
    client = FakeClient(hostinfo="error id=2568 msg=insufficient\\sclient\\spermissions\n\r")
    report, _, _ = _run(client)

    assert report.severity == Severity.CRITICAL
    assert report.message == (
        "error while fetching global host info - error id=2568: insufficient client permissions"
    )


def test_global_missing_uptime_is_parse_error():
    client = FakeClient(hostinfo="host_timestamp_utc=1" + OK)
    report, _, _ = _run(client)

    assert report.severity == Severity.CRITICAL
    assert report.message == "malformed instance output, unable to parse uptime"


def test_global_non_numeric_clients_is_parse_error():
    client = FakeClient(
        hostinfo="instance_uptime=100 virtualservers_total_maxclients=lots "
        "virtualservers_total_clients_online=1" + OK
    )
    report, _, _ = _run(client, clients=ThresholdSpec(warning=80))

    assert report.severity == Severity.CRITICAL
    assert report.message == "malformed clientinfo output, unable to parse client amount"


# ---------------- Virtual server mode ----------------

def test_virtual_all_checks_ok():
    report, orch, client = _run(
        virtual_port=9987,
        packet_loss=ThresholdSpec(warning=1, critical=5),
        ping=ThresholdSpec(warning=100, critical=200),
        clients=ThresholdSpec(warning=80, critical=95),
        minimal_uptime=60,
    )

    assert report.severity == Severity.OK
    assert report.message == "My Server has 20/50 clients online and is running for 2 hours"
    assert list(report.perf) == [
        "packetloss",
        "ping",
        "uptime",
        "connectedclients",
        "reservedslots",
        "maxclients",
        "clientpercentage",
    ]
    assert report.perf["packetloss"].value == 0.01
    assert report.perf["ping"].value == 36.0
    assert report.perf["clientpercentage"].value == 50.0
    assert [c[0] for c in client.calls] == ["connect", "use", "serverinfo"]
    assert orch.state == CheckState.REPORTED


def test_virtual_status_only_message():
    report, _, _ = _run(virtual_port=9987)

    assert report.severity == Severity.OK
    assert report.message == "My Server has been running for 2 hours"
    assert report.render() == "OK: My Server has been running for 2 hours"


def test_virtual_offline_is_critical_before_other_metrics():
    client = FakeClient(serverinfo="virtualserver_status=offline virtualserver_total_ping=999" + OK)
    report, _, _ = _run(client, virtual_port=9987, ping=ThresholdSpec(warning=100))

    assert report.severity == Severity.CRITICAL
    assert report.message == "virtualserver 9987 has status offline"
    assert report.perf == {}


def test_virtual_offline_ignored_is_unknown():
    client = FakeClient(serverinfo="virtualserver_status=offline" + OK)
    report, _, _ = _run(client, virtual_port=9987, ignore_virtualserver_status=True)

    assert report.severity == Severity.UNKNOWN
    assert report.exit_code == 3


def test_virtual_ping_breach_short_circuits():
    report, _, _ = _run(
        virtual_port=9987,
        packet_loss=ThresholdSpec(warning=1),
        ping=ThresholdSpec(warning=10, critical=30),
        clients=ThresholdSpec(warning=1),
    )

    assert report.severity == Severity.CRITICAL
    assert report.message == "average client ping 36 ms"
    # clients were never evaluated
    assert list(report.perf) == ["packetloss", "ping"]
    assert report.render() == (
        "CRITICAL: average client ping 36 ms|packetloss=0.01%;1; ping=36ms;10;30"
    )


def test_virtual_reserved_slots_in_message():
    report, _, _ = _run(virtual_port=9987, clients=ThresholdSpec(warning=40))

    assert report.severity == Severity.WARNING
    assert report.message == "number of clients reached 50% - 20/50 (10 reserved)"


def test_virtual_select_failure_is_unknown():
    client = FakeClient(use="error id=1024 msg=invalid\\sserverID\n\r")
    report, orch, _ = _run(client, virtual_port=1234)

    assert report.severity == Severity.UNKNOWN
    assert report.message == "unable to select virtualserver with port 1234: error id=1024: invalid serverID"
    assert orch.state == CheckState.REPORTED


def test_virtual_serverinfo_failure_is_unknown():
    client = FakeClient(serverinfo="error id=2568 msg=insufficient\\sclient\\spermissions\n\r")
    report, _, _ = _run(client, virtual_port=9987)

    assert report.severity == Severity.UNKNOWN
    assert report.message.startswith("error while fetching server info for virtualserver with port 9987")


def test_virtual_missing_name_is_parse_error():
    client = FakeClient(serverinfo="virtualserver_status=online virtualserver_uptime=1" + OK)
    report, _, _ = _run(client, virtual_port=9987)

    assert report.severity == Severity.CRITICAL
    assert report.message == "malformed instance output, unable to parse virtualservername"


def test_virtual_bad_packetloss_is_parse_error():
    client = FakeClient(
        serverinfo="virtualserver_name=x virtualserver_status=online virtualserver_uptime=1 "
        "virtualserver_total_packetloss_total=NaN%" + OK
    )
    report, _, _ = _run(client, virtual_port=9987, packet_loss=ThresholdSpec(warning=1))

    assert report.severity == Severity.CRITICAL
    assert report.message == "malformed serverinfo, unable to parse packetloss"


# ---------------- Errors and lifecycle ----------------

def test_config_error_reports_unknown_without_connecting():
    report, orch, client = _run(ping=ThresholdSpec(warning=100))

    assert report.severity == Severity.UNKNOWN
    assert report.message == "cannot check ping without port of virtual server set"
    assert client.calls == []
    assert orch.state == CheckState.REPORTED


def test_connect_error_is_critical():
    client = FakeClient(connect_error=ConnectError("could not connect to teamspeak: localhost:10011"))
    report, _, _ = _run(client)

    assert report.severity == Severity.CRITICAL
    assert report.render() == "CRITICAL: could not connect to teamspeak: localhost:10011"
    assert client.disconnects == 1


def test_login_sent_before_queries():
    report, _, client = _run(username="serveradmin", password="pw", virtual_port=9987)

    assert report.severity == Severity.OK
    assert client.calls[1] == ("login", "serveradmin", "pw")
    assert client.calls[2] == ("use", 9987)


def test_login_failure_is_unknown():
    client = FakeClient(login="error id=520 msg=invalid\\sloginname\\sor\\spassword\n\r")
    report, _, _ = _run(client, username="serveradmin", password="bad")

    assert report.severity == Severity.UNKNOWN
    assert report.message == (
        "login failed for user serveradmin: error id=520: invalid loginname or password"
    )
    assert ("hostinfo",) not in client.calls


def test_unexpected_exception_still_disconnects():
    class Boom(FakeClient):
        def get_global_host_info(self):
            raise RuntimeError("boom")

    client = Boom()
    orch = CheckOrchestrator(CheckConfig(), client=client)

    with pytest.raises(RuntimeError, match="boom"):
        orch.run()

    assert client.disconnects == 1


def test_run_only_once():
    _, orch, _ = _run()
    with pytest.raises(RuntimeError):
        orch.run()


def test_state_walks_forward(caplog):
    with caplog.at_level("DEBUG", logger="ts3perf.check.orchestrator"):
        _run(virtual_port=9987)

    transitions = [r.getMessage() for r in caplog.records if r.getMessage().startswith("CHECK_STATE")]
    assert transitions == [
        "CHECK_STATE DISCONNECTED -> CONNECTED",
        "CHECK_STATE CONNECTED -> SERVER_SELECTED",
        "CHECK_STATE SERVER_SELECTED -> EVALUATED",
        "CHECK_STATE EVALUATED -> REPORTED",
    ]
