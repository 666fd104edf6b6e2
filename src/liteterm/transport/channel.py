"""Byte channel contract and WebSocket implementation.

A channel is one duplex byte pipe per terminal pane, identified at open time
by the pane id. The session drives it:

    await channel.open()
    await channel.send(frame)
    data = await channel.receive()   # raises ChannelClosed on orderly close
    await channel.close()
"""

from abc import ABC, abstractmethod
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from ..config import TERMINAL_WS_URL
from ..core.ids import short_id
from ..errors import ChannelClosed, TransportError
from ..telemetry import get_logger

logger = get_logger(__name__)


class Channel(ABC):
    """Duplex byte channel bound to one pane."""

    def __init__(self, pane_id: str):
        self.pane_id = pane_id

    @abstractmethod
    async def open(self) -> None:
        """Establish the channel."""

    @abstractmethod
    async def send(self, data: bytes) -> None:
        """Send one message."""

    @abstractmethod
    async def receive(self) -> bytes:
        """Wait for the next message.

        Raises:
            ChannelClosed: the peer closed the channel normally
            TransportError: the channel failed
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the channel; safe to call more than once."""


def terminal_url(pane_id: str, base_url: str = TERMINAL_WS_URL) -> str:
    """Terminal WebSocket URL for a pane."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'pane': pane_id})}"


class WebSocketChannel(Channel):
    """Channel over one WebSocket connection (binary messages)."""

    def __init__(self, pane_id: str, url: str | None = None):
        super().__init__(pane_id)
        self.url = url or terminal_url(pane_id)
        self._ws: ClientConnection | None = None

    async def open(self) -> None:
        try:
            self._ws = await connect(self.url, max_size=None)
        except (OSError, WebSocketException) as e:
            raise TransportError(f"cannot connect to {self.url}: {e}") from e
        logger.info(f"[Channel:{short_id(self.pane_id)}] connected to {self.url}")

    async def send(self, data: bytes) -> None:
        if self._ws is None:
            raise TransportError("channel is not open")
        try:
            await self._ws.send(data)
        except ConnectionClosedOK as e:
            raise ChannelClosed(str(e)) from e
        except ConnectionClosed as e:
            raise TransportError(str(e)) from e

    async def receive(self) -> bytes:
        if self._ws is None:
            raise TransportError("channel is not open")
        try:
            message = await self._ws.recv()
        except ConnectionClosedOK as e:
            raise ChannelClosed(str(e)) from e
        except ConnectionClosed as e:
            raise TransportError(str(e)) from e
        if isinstance(message, str):
            return message.encode("utf-8")
        return message

    async def close(self) -> None:
        if self._ws is None:
            return
        await self._ws.close()
        logger.info(f"[Channel:{short_id(self.pane_id)}] closed")
