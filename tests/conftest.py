"""Pytest 配置"""

import asyncio

import pytest

from liteterm.errors import ChannelClosed, TransportError
from liteterm.telemetry import metrics
from liteterm.transport.channel import Channel


@pytest.fixture
def anyio_backend():
    """指定 anyio 只使用 asyncio backend"""
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_metrics():
    """每次测试前重置指标"""
    metrics.reset()
    yield
    metrics.reset()


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


_CLOSED = object()


class FakeChannel(Channel):
    """内存 channel：记录已发送 frame，receive 从队列取数据"""

    def __init__(self, pane_id: str = "pane", fail_open: bool = False):
        super().__init__(pane_id)
        self.sent: list[bytes] = []
        self.opened = False
        self.closed = False
        self.fail_open = fail_open
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def open(self) -> None:
        if self.fail_open:
            raise TransportError("connection refused")
        self.opened = True

    async def send(self, data: bytes) -> None:
        if self.closed:
            raise ChannelClosed("closed")
        self.sent.append(data)

    async def receive(self) -> bytes:
        item = await self._incoming.get()
        if item is _CLOSED:
            raise ChannelClosed("peer closed")
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True

    # 测试辅助

    def feed(self, data: bytes) -> None:
        self._incoming.put_nowait(data)

    def feed_close(self) -> None:
        self._incoming.put_nowait(_CLOSED)

    def feed_error(self, error: Exception) -> None:
        self._incoming.put_nowait(error)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel_cls():
    """FakeChannel 类（registry 的 channel_factory）"""
    return FakeChannel


@pytest.fixture
def channel():
    return FakeChannel("pane-1")
