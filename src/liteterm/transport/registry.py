"""SessionRegistry - Terminal pane 与传输会话一一对应

- attach(pane_id): pane 首次渲染时打开会话（幂等；已结束的会话不重开）
- sync(tree): pane 被关闭或改为非 Terminal 类型时同步终止会话
- bind(workspace): 订阅 Workspace 变化，自动 sync
"""

import asyncio
from collections.abc import Callable

from ..core.ids import short_id
from ..layout.engine import iter_panes
from ..layout.types import ContentType, LayoutNode
from ..layout.workspace import LayoutChange, Workspace
from ..telemetry import get_logger, metrics
from .channel import Channel, WebSocketChannel
from .session import BufferTerminalView, TerminalView, TransportSession

logger = get_logger(__name__)

ChannelFactory = Callable[[str], Channel]
ViewFactory = Callable[[str], TerminalView]


def terminal_pane_ids(tree: LayoutNode) -> set[str]:
    """树中所有 Terminal pane 的 id"""
    return {pane.id for pane in iter_panes(tree) if pane.content_type is ContentType.TERMINAL}


class SessionRegistry:
    """传输会话注册表"""

    def __init__(
        self,
        channel_factory: ChannelFactory = WebSocketChannel,
        view_factory: ViewFactory | None = None,
    ):
        self._channel_factory = channel_factory
        self._view_factory = view_factory or (lambda pane_id: BufferTerminalView())
        self._sessions: dict[str, TransportSession] = {}
        self._closing: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, pane_id: str) -> bool:
        return pane_id in self._sessions

    def get(self, pane_id: str) -> TransportSession | None:
        return self._sessions.get(pane_id)

    def sessions(self) -> dict[str, TransportSession]:
        return dict(self._sessions)

    def bind(self, workspace: Workspace) -> None:
        """订阅 workspace 变化"""
        workspace.on_change(self._on_change)

    def _on_change(self, change: LayoutChange) -> None:
        if change.current is not change.previous:
            self.sync(change.current)

    def attach(self, pane_id: str) -> TransportSession:
        """为 Terminal pane 打开会话（需在事件循环中调用）"""
        session = self._sessions.get(pane_id)
        if session is not None:
            return session

        session = TransportSession(
            pane_id=pane_id,
            channel=self._channel_factory(pane_id),
            view=self._view_factory(pane_id),
        )
        self._sessions[pane_id] = session
        session.start()
        logger.info(f"[Registry] attach {short_id(pane_id)} -> {session.id}")
        metrics.inc("transport.sessions_opened")
        metrics.gauge("transport.sessions", len(self._sessions))
        return session

    def attach_all(self, tree: LayoutNode) -> list[TransportSession]:
        """为树中所有 Terminal pane 打开会话"""
        return [self.attach(pane_id) for pane_id in sorted(terminal_pane_ids(tree))]

    def sync(self, tree: LayoutNode) -> list[str]:
        """终止不再对应 Terminal pane 的会话

        Returns:
            被终止的 pane id 列表
        """
        live = terminal_pane_ids(tree)
        stale = [pane_id for pane_id in self._sessions if pane_id not in live]
        for pane_id in stale:
            self.detach(pane_id)
        return stale

    def detach(self, pane_id: str) -> bool:
        """终止并移除 pane 的会话"""
        session = self._sessions.pop(pane_id, None)
        if session is None:
            return False

        task = session.terminate()
        if task is not None:
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        logger.info(f"[Registry] detach {short_id(pane_id)} ({session.id})")
        metrics.gauge("transport.sessions", len(self._sessions))
        return True

    async def drain(self) -> None:
        """等待所有 channel 关闭任务完成"""
        if self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)

    async def close_all(self) -> None:
        """终止全部会话"""
        for pane_id in list(self._sessions):
            self.detach(pane_id)
        await self.drain()
