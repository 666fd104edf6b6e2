"""Web 服务模块"""

from .app import create_app, main
from .handlers import LayoutAction, MessageHandler, apply_action
from .server import WebServer
from .terminal import PtyProcess, TerminalEndpoint

__all__ = [
    "create_app",
    "main",
    "LayoutAction",
    "MessageHandler",
    "apply_action",
    "WebServer",
    "PtyProcess",
    "TerminalEndpoint",
]
