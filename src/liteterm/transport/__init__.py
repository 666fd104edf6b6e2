"""Terminal transport module.

- frames: binary frame codec (input / resize)
- channel: byte channel contract, WebSocket implementation
- session: per-pane TransportSession (banner, fit, tab debounce)
- registry: one session per Terminal pane, torn down in lockstep with the tree
"""

from .frames import (
    FrameType,
    InputFrame,
    ResizeFrame,
    encode_input,
    encode_resize,
    decode_client_frame,
)
from .channel import Channel, WebSocketChannel, terminal_url
from .session import (
    SessionState,
    TerminalView,
    BufferTerminalView,
    TransportSession,
)
from .registry import SessionRegistry, terminal_pane_ids

__all__ = [
    # Frames
    "FrameType",
    "InputFrame",
    "ResizeFrame",
    "encode_input",
    "encode_resize",
    "decode_client_frame",
    # Channel
    "Channel",
    "WebSocketChannel",
    "terminal_url",
    # Session
    "SessionState",
    "TerminalView",
    "BufferTerminalView",
    "TransportSession",
    # Registry
    "SessionRegistry",
    "terminal_pane_ids",
]
