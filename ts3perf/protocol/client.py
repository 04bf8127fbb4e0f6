# ts3perf/protocol/client.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from ts3perf.core.errors import ConnectError, UnexpectedGreetingError
from ts3perf.transport.base import Transport
from ts3perf.transport.errors import TransportError, TransportOpenError
from ts3perf.transport.tcp import TcpTransport

from .decoder import DecodedResponse, decode_response
from .escape import escape
from .framing import SETTLE_DELAY_S, FrameReader, lines_complete, reply_complete

TransportFactory = Callable[[str, int, float], Transport]

GREETING_MARKER = "TS3"
# "TS3" line followed by the welcome banner
GREETING_LINES = 2


def _default_transport(host: str, port: int, timeout: float) -> Transport:
    return TcpTransport(host, port, timeout=timeout)


class ServerQueryClient:
    """
    Synchronous ServerQuery client: one connection, one outstanding command.

    Only the read-only commands a health check needs are exposed.
    """

    def __init__(
        self,
        *,
        transport_factory: TransportFactory = _default_transport,
        settle_delay_s: float = SETTLE_DELAY_S,
        logger: Optional[logging.Logger] = None,
    ):
        self._transport_factory = transport_factory
        self._settle_delay_s = settle_delay_s
        self._log = logger or logging.getLogger(__name__)

        self._transport: Optional[Transport] = None
        self._reader: Optional[FrameReader] = None

    @property
    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_open()

    # ---------------- Connection ----------------
    def connect(self, host: str, port: int, timeout: float = 10.0) -> None:
        """
        Dial the endpoint and validate the greeting.

        Raises ConnectError if the host is unreachable and
        UnexpectedGreetingError if the peer does not greet like a TS3 server.
        """
        if self._transport is not None:
            self.disconnect()

        self._log.debug("CONNECTING tcp://%s:%s timeout_s=%s", host, port, timeout)
        transport = self._transport_factory(host, int(port), float(timeout))
        try:
            transport.open()
        except TransportOpenError as e:
            self._log.debug("CONNECT_FAILED host=%s port=%s reason=%s", host, port, e)
            raise ConnectError(
                f"could not connect to teamspeak: {host}:{port}",
                hint="Check host, ServerQuery port and firewall.",
                details={"host": host, "port": port, "reason": str(e)},
            ) from None

        self._transport = transport
        self._reader = FrameReader(
            transport,
            timeout_s=timeout,
            settle_delay_s=self._settle_delay_s,
            logger=self._log,
        )

        try:
            frame = self._reader.read_frame(lines_complete(GREETING_LINES))
        except ConnectError:
            self._close_transport()
            raise

        greeting = frame.text()
        if GREETING_MARKER.lower() not in greeting.lower():
            self._log.debug("UNEXPECTED_GREETING text=%r", greeting)
            self._close_transport()
            raise UnexpectedGreetingError(greeting)

        self._log.debug("CONNECTED endpoint=%s", transport.endpoint)

    def disconnect(self) -> None:
        """Send `quit` (best effort) and close. No-op when not connected."""
        if self._transport is None:
            return

        if self._transport.is_open():
            try:
                self.send_command("quit")
            except (ConnectError, TransportError) as e:
                self._log.debug("QUIT_FAILED reason=%s", e)

        self._close_transport()
        self._log.debug("DISCONNECTED")

    def _close_transport(self) -> None:
        transport, self._transport, self._reader = self._transport, None, None
        if transport is not None:
            try:
                transport.close()
            except TransportError as e:
                self._log.debug("TRANSPORT_CLOSE_FAILED reason=%s", e)

    def __enter__(self) -> "ServerQueryClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # ---------------- Command API ----------------
    def send_command(self, cmd: str, *, log_as: Optional[str] = None) -> DecodedResponse:
        if "\n" in cmd or "\r" in cmd:
            raise ValueError("ServerQuery commands must be a single line")
        if self._transport is None or self._reader is None:
            raise ConnectError("not connected to teamspeak", details={"cmd": log_as or cmd})

        try:
            self._transport.write_line(cmd)
        except TransportError as e:
            self._log.debug("CMD_SEND_FAILED cmd=%s reason=%s", log_as or cmd, e)
            self._close_transport()
            raise ConnectError(
                f"lost connection to teamspeak: {e}",
                details={"cmd": log_as or cmd},
            ) from None

        self._log.debug("CMD_SENT cmd=%s", log_as or cmd)

        frame = self._reader.read_frame(reply_complete)
        raw = frame.text()
        self._log.debug("CMD_RECEIVED complete=%s eof=%s raw=%r", frame.complete, frame.eof, raw)

        if frame.eof:
            # peer hung up; nothing left to quit
            self._close_transport()

        return decode_response(raw)

    def select_virtual_server(self, port: int) -> DecodedResponse:
        return self.send_command(f"use port={int(port)}")

    def login(self, username: str, password: str) -> DecodedResponse:
        name = escape(username)
        return self.send_command(
            f"login client_login_name={name} client_login_password={escape(password)}",
            log_as=f"login client_login_name={name} client_login_password=***",
        )

    def get_global_host_info(self) -> DecodedResponse:
        return self.send_command("hostinfo")

    def get_server_info(self) -> DecodedResponse:
        return self.send_command("serverinfo")
