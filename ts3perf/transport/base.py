from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# ServerQuery expects client lines ending CR LF (the server answers LF CR)
LINE_ENDING = "\r\n"


class Transport(ABC):
    """
    Byte stream to one ServerQuery endpoint.

    read(n) returns what arrived (at most n bytes) or b"" when the read
    timeout passed with nothing received. Once the peer has gone away,
    read/write raise TransportIOError.
    """

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """host:port, for log lines and error messages."""

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    def read(self, n: int) -> bytes: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    @abstractmethod
    def flush(self) -> None: ...

    def write_line(self, line: str) -> int:
        """Send one command line (UTF-8, CR LF appended) and flush it out."""
        data = (line + LINE_ENDING).encode("utf-8")
        written = self.write(data)
        self.flush()
        return written

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
