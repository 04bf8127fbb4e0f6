# ts3perf/core/errors.py
from __future__ import annotations

from ts3perf.core.severity import Severity


class Ts3CheckError(Exception):
    """
    Base class for all expected operational errors of a check run.

    Every error ends the run: the orchestrator turns it into a report with
    `severity` and the error message.
    """

    #: Stable machine-readable identifier (debug log, tests)
    code: str = "unknown"

    #: Monitoring state reported when this error ends a check
    severity: Severity = Severity.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (no network access yet)
# ---------------------------------------------------------------------------

class CheckConfigError(Ts3CheckError):
    """
    Configuration is invalid or cannot be honoured in the selected mode.

    Examples:
      - packet loss / ping thresholds without a virtual server port
      - unreadable or malformed YAML config file
      - unknown config key or wrong value type
    """
    code = "config_error"
    severity = Severity.UNKNOWN


# ---------------------------------------------------------------------------
# Connection errors
# ---------------------------------------------------------------------------

class ConnectError(Ts3CheckError):
    """
    ServerQuery endpoint could not be reached or did not behave like one.

    Examples:
      - connection refused / host unreachable / dial timeout
      - I/O failure while talking to the server
    """
    code = "unreachable"
    severity = Severity.CRITICAL


class UnexpectedGreetingError(ConnectError):
    """Peer answered, but its greeting does not contain the TS3 banner."""
    code = "unexpected_greeting"

    def __init__(self, greeting: str):
        super().__init__(
            "unexpected response from server",
            hint="Check that --port points at the ServerQuery (telnet) port.",
            details={"greeting": greeting},
        )
        self.greeting = greeting


class ResponseTooLargeError(ConnectError):
    """Peer kept sending data without a frame terminator."""
    code = "response_too_large"

    def __init__(self, limit: int):
        super().__init__(
            f"response exceeded {limit} bytes without terminator",
            details={"limit": limit},
        )
        self.limit = limit


# ---------------------------------------------------------------------------
# Protocol / data errors
# ---------------------------------------------------------------------------

class CommandFailedError(Ts3CheckError):
    """
    Server answered a command with a non-zero error id.

    The severity depends on which command failed, so it is set per instance.
    """
    code = "command_failed"

    def __init__(
        self,
        message: str,
        *,
        severity: Severity = Severity.CRITICAL,
        raw: str = "",
    ):
        super().__init__(message, details={"raw": raw})
        self.severity = severity
        self.raw = raw


class ProtocolParseError(Ts3CheckError):
    """
    Reply carried the success marker but an expected field is missing
    or not numeric.
    """
    code = "protocol_parse_error"
    severity = Severity.CRITICAL

    def __init__(self, message: str, *, field: str, raw: str = ""):
        super().__init__(message, details={"field": field, "raw": raw})
        self.field = field
        self.raw = raw
