from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .escape import unescape

SUCCESS_MARKER = "error id=0 msg=ok"
_WRAPPED_SUCCESS = "\n\r" + SUCCESS_MARKER + "\n\r"

_STATUS_RE = re.compile(r"error id=(\d+) msg=(\S*)")


@dataclass(frozen=True)
class DecodedResponse:
    """
    One decoded ServerQuery reply.

    `fields` is only populated on success; values are kept exactly as sent
    (still escaped). `raw` is always the full reply text.
    """
    succeeded: bool
    fields: Mapping[str, str] = field(default_factory=dict)
    raw: str = ""
    error_id: Optional[int] = None
    error_message: Optional[str] = None

    def describe_error(self) -> str:
        """Short diagnostic for a failed reply."""
        if self.error_id is not None:
            msg = self.error_message or ""
            return f"error id={self.error_id}: {msg}" if msg else f"error id={self.error_id}"
        text = self.raw.strip()
        return text if text else "empty response"


def parse_status_line(raw: str) -> tuple[Optional[int], Optional[str]]:
    """Return (id, unescaped msg) of the last status line in `raw`, if any."""
    matches = _STATUS_RE.findall(raw)
    if not matches:
        return None, None
    err_id, msg = matches[-1]
    return int(err_id), unescape(msg)


def decode_response(raw: str) -> DecodedResponse:
    error_id, error_message = parse_status_line(raw)

    if SUCCESS_MARKER not in raw:
        return DecodedResponse(
            succeeded=False,
            raw=raw,
            error_id=error_id,
            error_message=error_message,
        )

    payload = raw.replace(_WRAPPED_SUCCESS, "", 1)

    fields: Dict[str, str] = {}
    for token in payload.split(" "):
        key, sep, _ = token.partition("=")
        if not sep:
            continue
        # strip the "key=" prefix only; the value may contain "=" itself
        fields[key] = token[len(key) + 1:]

    return DecodedResponse(
        succeeded=True,
        fields=fields,
        raw=raw,
        error_id=error_id,
        error_message=error_message,
    )
