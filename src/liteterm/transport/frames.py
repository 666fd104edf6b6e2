"""Terminal frame codec.

Client -> server frames are tagged by their first byte:

| tag  | frame  | payload                                   |
|------|--------|-------------------------------------------|
| 0x01 | input  | UTF-8 bytes of the keystrokes, no length  |
| 0x02 | resize | rows (u16 BE), cols (u16 BE); 5 bytes     |

Server -> client messages are raw terminal output with no framing. The frame
boundary is the transport message boundary.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum

from ..errors import FrameError

_RESIZE = struct.Struct(">BHH")
_U16_MAX = 0xFFFF


class FrameType(IntEnum):
    """Client frame tags."""

    INPUT = 0x01
    RESIZE = 0x02


@dataclass(frozen=True)
class InputFrame:
    data: bytes


@dataclass(frozen=True)
class ResizeFrame:
    rows: int
    cols: int


ClientFrame = InputFrame | ResizeFrame


def encode_input(data: str | bytes) -> bytes:
    """Encode keystrokes as an input frame."""
    payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return bytes([FrameType.INPUT]) + payload


def encode_resize(rows: int, cols: int) -> bytes:
    """Encode a terminal size as a 5-byte resize frame.

    Raises:
        FrameError: rows or cols do not fit in an unsigned 16-bit integer
    """
    for name, value in (("rows", rows), ("cols", cols)):
        if not 0 <= value <= _U16_MAX:
            raise FrameError(f"{name} out of range: {value}")
    return _RESIZE.pack(FrameType.RESIZE, rows, cols)


def decode_client_frame(message: bytes) -> ClientFrame | None:
    """Decode a client frame on the shell side.

    Empty messages, input frames without payload, short resize frames and
    unknown tags decode to None and are ignored by the peer. Bytes after the
    first five of a resize frame are ignored.
    """
    if not message:
        return None

    tag = message[0]
    if tag == FrameType.INPUT:
        if len(message) < 2:
            return None
        return InputFrame(data=bytes(message[1:]))
    if tag == FrameType.RESIZE:
        if len(message) < _RESIZE.size:
            return None
        _, rows, cols = _RESIZE.unpack_from(message)
        return ResizeFrame(rows=rows, cols=cols)
    return None
