# protocol/__init__.py

from .client import ServerQueryClient
from .decoder import DecodedResponse, decode_response
from .escape import escape, unescape
from .framing import FrameReader, RawFrame

__all__ = [
    "ServerQueryClient",
    "DecodedResponse", "decode_response",
    "escape", "unescape",
    "FrameReader", "RawFrame"]
