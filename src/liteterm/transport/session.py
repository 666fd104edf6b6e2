"""TransportSession - 每个 Terminal pane 一个传输会话

职责：
- 打开 channel，输出本地横幅，fit 一次并发送 resize，然后 focus
- 按键编码为 input frame；Tab 防抖（200ms 内的第二个 Tab 直接丢弃，
  被接受的 Tab 延迟 50ms 发送）
- 仅在显式 refresh_size() 时发送 resize，布局变化不会触发
- 服务端输出原样写入 TerminalView
- 关闭/出错时在终端内显示提示，不重连

状态流转：CONNECTING → OPEN → CLOSED（CLOSED 为终态）
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

from ..config import (
    BANNER,
    CLOSED_MESSAGE,
    ERROR_MESSAGE,
    SCROLLBACK_MAX_BYTES,
    TAB_DEBOUNCE_SECONDS,
    TAB_SEND_DELAY_SECONDS,
    TERMINAL_COLS,
    TERMINAL_ROWS,
)
from ..core.ids import new_session_id
from ..errors import ChannelClosed, TransportError
from ..telemetry import format_pane_log, get_logger, metrics
from .channel import Channel
from .frames import FrameType, encode_input, encode_resize

logger = get_logger(__name__)

TAB = "\t"


class SessionState(Enum):
    """传输会话状态"""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class TerminalView(ABC):
    """终端显示端：不透明的字节接收者"""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """写入终端输出"""

    @abstractmethod
    def fit(self) -> tuple[int, int]:
        """按容器尺寸计算 (rows, cols)"""

    def focus(self) -> None:
        """获取输入焦点"""


class BufferTerminalView(TerminalView):
    """内存 scrollback，供 rich 渲染和测试使用"""

    def __init__(
        self,
        rows: int = TERMINAL_ROWS,
        cols: int = TERMINAL_COLS,
        max_bytes: int = SCROLLBACK_MAX_BYTES,
    ):
        self.rows = rows
        self.cols = cols
        self.focused = False
        self._max_bytes = max_bytes
        self._buffer = bytearray()

    def write(self, data: bytes) -> None:
        self._buffer.extend(data)
        overflow = len(self._buffer) - self._max_bytes
        if overflow > 0:
            del self._buffer[:overflow]

    def fit(self) -> tuple[int, int]:
        return self.rows, self.cols

    def focus(self) -> None:
        self.focused = True

    def resize(self, rows: int, cols: int) -> None:
        """更新容器尺寸；下一次 refresh_size() 才会通知远端"""
        self.rows = rows
        self.cols = cols

    def text(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")


class TransportSession:
    """单个 Terminal pane 的传输会话

    Attributes:
        id: 会话 id
        pane_id: 所属 pane
        view: 终端显示端
    """

    def __init__(
        self,
        pane_id: str,
        channel: Channel,
        view: TerminalView,
        clock: Callable[[], float] = time.monotonic,
        tab_debounce: float = TAB_DEBOUNCE_SECONDS,
        tab_delay: float = TAB_SEND_DELAY_SECONDS,
    ):
        self.id = new_session_id()
        self.pane_id = pane_id
        self.view = view
        self._channel = channel
        self._clock = clock
        self._tab_debounce = tab_debounce
        self._tab_delay = tab_delay

        self._state = SessionState.CONNECTING
        self._last_tab_at: float | None = None
        self._pending: set[asyncio.Task] = set()
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    def _log(self, msg: str) -> str:
        return format_pane_log("Transport", self.pane_id, msg)

    # === 生命周期 ===

    def start(self) -> asyncio.Task:
        """在当前事件循环中启动 run()"""
        if self._task is None:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        """打开 channel 并持续接收输出，直到关闭或出错"""
        try:
            await self._channel.open()
        except TransportError as e:
            self._handle_error(e)
            return

        if self._state is SessionState.CLOSED:
            # 连接期间已被 terminate
            await self._channel.close()
            return

        await self._handle_open()

        try:
            while self._state is SessionState.OPEN:
                data = await self._channel.receive()
                self._handle_message(data)
        except ChannelClosed:
            self._handle_close()
        except TransportError as e:
            self._handle_error(e)

    def terminate(self) -> asyncio.Task | None:
        """同步终止会话（pane 被关闭或改为非 Terminal 类型）

        状态立即变为 CLOSED，之后不再发送任何 frame；channel 的关闭
        作为任务调度，返回该任务供调用方等待。
        """
        already_closed = self._state is SessionState.CLOSED
        self._state = SessionState.CLOSED

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

        current = asyncio.current_task() if self._has_loop() else None
        if self._task is not None and self._task is not current and not self._task.done():
            self._task.cancel()

        if not self._has_loop():
            return None

        logger.info(self._log("terminated" if not already_closed else "terminated (already ended)"))
        metrics.inc("transport.terminated")
        return asyncio.create_task(self._close_channel())

    async def _close_channel(self) -> None:
        try:
            await self._channel.close()
        except Exception as e:
            logger.warning(self._log(f"channel close failed: {e}"))

    @staticmethod
    def _has_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    # === 事件处理 ===

    async def _handle_open(self) -> None:
        self._state = SessionState.OPEN
        self.view.write(BANNER.encode("utf-8"))
        rows, cols = self.view.fit()
        await self._send(encode_resize(rows, cols))
        self.view.focus()
        logger.info(self._log(f"open ({rows}x{cols})"))

    def _handle_message(self, data: bytes) -> None:
        self.view.write(data)

    def _handle_close(self) -> None:
        self._end(CLOSED_MESSAGE)
        logger.info(self._log("closed by peer"))

    def _handle_error(self, error: Exception) -> None:
        self._end(ERROR_MESSAGE.format(error=error))
        logger.warning(self._log(f"error: {error}"))
        metrics.inc("transport.errors")

    def _end(self, message: str) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self.view.write(message.encode("utf-8"))

    # === 发送 ===

    async def send_input(self, data: str | bytes) -> bool:
        """发送用户输入

        Returns:
            是否被接受（被防抖丢弃的 Tab 返回 False）
        """
        if data in (TAB, TAB.encode()):
            return self._schedule_tab()
        return await self._send(encode_input(data))

    def _schedule_tab(self) -> bool:
        now = self._clock()
        if self._last_tab_at is not None and now - self._last_tab_at < self._tab_debounce:
            logger.debug(self._log(f"tab dropped ({(now - self._last_tab_at) * 1000:.0f}ms)"))
            metrics.inc("transport.tab_dropped")
            return False

        self._last_tab_at = now
        task = asyncio.create_task(self._send_later(encode_input(TAB), self._tab_delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return True

    async def _send_later(self, frame: bytes, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._send(frame)

    async def refresh_size(self) -> bool:
        """显式重新 fit，并发送一个 resize frame"""
        rows, cols = self.view.fit()
        return await self._send(encode_resize(rows, cols))

    async def _send(self, frame: bytes) -> bool:
        if self._state is not SessionState.OPEN:
            logger.debug(self._log(f"drop frame 0x{frame[0]:02x}, session {self._state.value}"))
            return False
        try:
            await self._channel.send(frame)
        except ChannelClosed:
            self._handle_close()
            return False
        except TransportError as e:
            self._handle_error(e)
            return False
        metrics.inc("transport.frames_sent", {"kind": FrameType(frame[0]).name.lower()})
        return True
