# ts3perf/transport/tcp.py
from __future__ import annotations

import socket
from typing import Optional

from .base import Transport
from .errors import TransportClosedError, TransportIOError, TransportOpenError


class TcpTransport(Transport):
    """
    Plain TCP socket to a ServerQuery port.

    Notes:
      - `timeout` bounds the dial and every single read and write.
      - Bytes the server sends right after accepting (the greeting) stay
        queued in the socket until the first read.
      - read(n) is one recv(): whatever is available, up to n bytes. Data
        sent together with a hang-up is returned first; the following read
        raises TransportIOError.
    """

    def __init__(self, host: str, port: int, timeout: float = 10.0):
        self.host = host
        self.port = int(port)
        self.timeout = timeout
        self.sock: Optional[socket.socket] = None

    @property
    def endpoint(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def open(self) -> None:
        try:
            self.sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            self.sock = None
            raise TransportOpenError(f"could not connect to {self.endpoint}: {e}") from None

    def close(self) -> None:
        if self.sock is not None:
            try:
                self.sock.close()
            finally:
                self.sock = None

    def is_open(self) -> bool:
        return self.sock is not None

    def read(self, n: int) -> bytes:
        if self.sock is None:
            raise TransportClosedError("read while transport not open")

        try:
            data = self.sock.recv(n)
        except socket.timeout:
            # nothing arrived within the timeout
            return b""
        except OSError as e:
            self.close()
            raise TransportIOError(f"TCP read failed: {e}") from None

        if not data:
            self.close()
            raise TransportIOError("connection closed by peer")
        return data

    def write(self, data: bytes) -> int:
        if self.sock is None:
            raise TransportClosedError("write while transport not open")

        try:
            self.sock.sendall(data)
        except OSError as e:
            self.close()
            raise TransportIOError(f"TCP write failed: {e}") from None
        return len(data)

    def flush(self) -> None:
        # sendall() already handed everything to the kernel
        if self.sock is None:
            raise TransportClosedError("flush while transport not open")
