from __future__ import annotations

import re

# ServerQuery escape table: raw character -> escaped sequence
_ESCAPES: dict[str, str] = {
    "\\": r"\\",
    "/": r"\/",
    " ": r"\s",
    "|": r"\p",
    "\a": r"\a",
    "\b": r"\b",
    "\f": r"\f",
    "\n": r"\n",
    "\r": r"\r",
    "\t": r"\t",
    "\v": r"\v",
}

_UNESCAPES: dict[str, str] = {v[1]: k for k, v in _ESCAPES.items()}

_ESCAPE_RE = re.compile("|".join(re.escape(c) for c in _ESCAPES))
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def escape(raw: str) -> str:
    """Escape a value for use inside a ServerQuery command."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], raw)


def unescape(text: str) -> str:
    """
    Undo ServerQuery escaping in a single pass.

    Unknown sequences keep the escaped character (``\\x`` -> ``x``).
    """
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), text)
