from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ts3perf.core.errors import ResponseTooLargeError
from ts3perf.transport.base import Transport
from ts3perf.transport.errors import TransportIOError

# ServerQuery ends every line with LF CR (reversed from the usual CR LF)
TERMINATOR = b"\n\r"
STATUS_PREFIX = b"error id="

SETTLE_DELAY_S = 0.05
MAX_FRAME_BYTES = 64 * 1024
READ_CHUNK = 1024

CompletionFn = Callable[[bytes], bool]


def ends_with_terminator(buf: bytes) -> bool:
    return buf.endswith(TERMINATOR)


def reply_complete(buf: bytes) -> bool:
    """A command reply is done once its last terminated line is the status line."""
    if not buf.endswith(TERMINATOR):
        return False
    last_line = buf[: -len(TERMINATOR)].rsplit(TERMINATOR, 1)[-1]
    return last_line.startswith(STATUS_PREFIX)


def lines_complete(count: int) -> CompletionFn:
    """Done once `count` terminated lines have been received."""
    def _complete(buf: bytes) -> bool:
        return buf.endswith(TERMINATOR) and buf.count(TERMINATOR) >= count
    return _complete


@dataclass(frozen=True)
class RawFrame:
    data: bytes
    complete: bool
    eof: bool = False

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class FrameReader:
    """
    Accumulates bytes from a transport until a frame is complete.

    Stops on (in order of checking): completion, peer hang-up, a read that
    timed out with nothing new, or the overall deadline. Only the size cap
    raises; every other stop returns what was collected so far.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        timeout_s: float = 10.0,
        settle_delay_s: float = SETTLE_DELAY_S,
        max_bytes: int = MAX_FRAME_BYTES,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.timeout_s = float(timeout_s)
        self.settle_delay_s = float(settle_delay_s)
        self.max_bytes = int(max_bytes)
        self._log = logger or logging.getLogger(__name__)
        self._clock = clock
        self._sleep = sleep

    def read_frame(self, complete: CompletionFn = ends_with_terminator) -> RawFrame:
        # servers need a moment before the reply is available
        if self.settle_delay_s > 0:
            self._sleep(self.settle_delay_s)

        buf = bytearray()
        deadline = self._clock() + self.timeout_s

        while True:
            try:
                chunk = self.transport.read(READ_CHUNK)
            except TransportIOError as e:
                self._log.debug("FRAME_EOF bytes=%d reason=%s", len(buf), e)
                return RawFrame(bytes(buf), complete=False, eof=True)

            if not chunk:
                self._log.debug("FRAME_TIMEOUT bytes=%d", len(buf))
                return RawFrame(bytes(buf), complete=False)

            buf.extend(chunk)
            if len(buf) > self.max_bytes:
                self._log.warning("FRAME_TOO_LARGE bytes=%d max=%d", len(buf), self.max_bytes)
                raise ResponseTooLargeError(self.max_bytes)

            if complete(bytes(buf)):
                return RawFrame(bytes(buf), complete=True)

            if self._clock() >= deadline:
                self._log.debug("FRAME_DEADLINE bytes=%d timeout_s=%.1f", len(buf), self.timeout_s)
                return RawFrame(bytes(buf), complete=False)
