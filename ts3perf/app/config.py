from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ts3perf.check.thresholds import ThresholdSpec
from ts3perf.core.errors import CheckConfigError

DEFAULT_HOST = "localhost"
DEFAULT_QUERY_PORT = 10011
DEFAULT_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class CheckConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_QUERY_PORT
    virtual_port: Optional[int] = None
    timeout_s: float = DEFAULT_TIMEOUT_S

    packet_loss: ThresholdSpec = field(default_factory=ThresholdSpec)
    ping: ThresholdSpec = field(default_factory=ThresholdSpec)
    clients: ThresholdSpec = field(default_factory=ThresholdSpec)
    minimal_uptime: int = 0

    ignore_reserved_slots: bool = False
    ignore_virtualserver_status: bool = False

    username: Optional[str] = None
    password: Optional[str] = None

    debug: bool = False

    @property
    def virtual_mode(self) -> bool:
        return bool(self.virtual_port)

    def validate(self) -> None:
        """Reject threshold combinations the selected mode cannot evaluate."""
        if not self.host:
            raise CheckConfigError("no host given")
        if not 0 < self.port < 65536:
            raise CheckConfigError(f"invalid query port {self.port}")
        if self.timeout_s <= 0:
            raise CheckConfigError(f"invalid timeout {self.timeout_s}")

        if not self.virtual_mode:
            if self.packet_loss.active:
                raise CheckConfigError(
                    "cannot check packetloss without port of virtual server set",
                    hint="Pass --virtualport.",
                )
            if self.ping.active:
                raise CheckConfigError(
                    "cannot check ping without port of virtual server set",
                    hint="Pass --virtualport.",
                )

        if self.password is not None and not self.username:
            raise CheckConfigError("password given without username")
