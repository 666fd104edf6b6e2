"""布局操作分发 - REST 与 WebSocket 共用"""

import json
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import WebSocket
from pydantic import BaseModel, Field, ValidationError

from ..errors import FrameError, LayoutError, LiteTermError, TransportError
from ..layout.types import ContentType, Direction, node_from_dict
from ..layout.workspace import Workspace
from ..telemetry import get_logger
from ..transport.registry import SessionRegistry
from ..transport.session import BufferTerminalView

logger = get_logger(__name__)


class ActionError(LiteTermError):
    """请求缺少必要字段或目标无会话"""


class LayoutAction(BaseModel):
    """布局操作请求体"""

    action: Literal[
        "split",
        "close",
        "change_type",
        "open_preview",
        "maximize",
        "set_layout",
        "apply_template",
    ]
    pane_id: str | None = None
    direction: Direction | None = None
    content_type: ContentType | None = None
    file_path: str | None = None
    template: str | None = None
    layout: dict[str, Any] | None = None


class TerminalInput(BaseModel):
    """终端输入请求体"""

    data: str


class TerminalSize(BaseModel):
    """终端尺寸请求体（省略时沿用当前 fit 结果）"""

    rows: int | None = Field(default=None, ge=0, le=0xFFFF)
    cols: int | None = Field(default=None, ge=0, le=0xFFFF)


def _require(value, name: str, action: str):
    if value is None:
        raise ActionError(f"{action} requires {name}")
    return value


def apply_action(workspace: Workspace, request: LayoutAction) -> bool:
    """执行布局操作

    Returns:
        树或视图是否发生变化（no-op 返回 False）

    Raises:
        ActionError: 缺少字段
        LayoutError: 布局文档错误 / 模板不合法 / 模板不存在
    """
    action = request.action

    if action == "split":
        return workspace.split_pane(
            _require(request.pane_id, "pane_id", action),
            request.direction or Direction.HORIZONTAL,
        )
    if action == "close":
        return workspace.close_pane(_require(request.pane_id, "pane_id", action))
    if action == "change_type":
        return workspace.change_pane_type(
            _require(request.pane_id, "pane_id", action),
            _require(request.content_type, "content_type", action),
        )
    if action == "open_preview":
        return workspace.open_preview(
            _require(request.pane_id, "pane_id", action),
            _require(request.file_path, "file_path", action),
        )
    if action == "maximize":
        return workspace.toggle_maximize(_require(request.pane_id, "pane_id", action))
    if action == "set_layout":
        tree = node_from_dict(_require(request.layout, "layout", action))
        return workspace.set_layout(tree)
    # apply_template
    return workspace.apply_template(_require(request.template, "template", action))


async def send_terminal_input(registry: SessionRegistry | None, pane_id: str, data: str) -> bool:
    """把输入发送到 pane 的传输会话

    Raises:
        ActionError: pane 没有会话
    """
    session = registry.get(pane_id) if registry is not None else None
    if session is None:
        raise ActionError(f"no terminal session for pane {pane_id}")
    return await session.send_input(data)


async def refresh_terminal_size(
    registry: SessionRegistry | None,
    pane_id: str,
    size: TerminalSize,
) -> bool:
    """显式 re-fit：更新尺寸（可选）并发送一个 resize frame

    Raises:
        ActionError: pane 没有会话
        FrameError: 尺寸超出 u16 范围（view 保持原尺寸）
    """
    session = registry.get(pane_id) if registry is not None else None
    if session is None:
        raise ActionError(f"no terminal session for pane {pane_id}")
    view = session.view
    if size.rows is None or size.cols is None or not isinstance(view, BufferTerminalView):
        return await session.refresh_size()

    previous = view.fit()
    view.resize(size.rows, size.cols)
    try:
        return await session.refresh_size()
    except FrameError:
        view.resize(*previous)
        raise


@dataclass
class MessageHandler:
    """WebSocket 消息处理器

    消息格式（JSON）：
    - {"action": "split", "pane_id": ..., "direction": ...}  布局操作
    - {"action": "input", "pane_id": ..., "data": ...}        终端输入
    - {"action": "refresh_size", "pane_id": ..., "rows", "cols"}
    """

    workspace: Workspace
    registry: SessionRegistry | None = None

    async def handle(self, websocket: WebSocket, data: str) -> None:
        """处理 WebSocket 消息"""
        try:
            msg = json.loads(data)
        except json.JSONDecodeError:
            await self._reply(websocket, None, success=False, error="invalid json")
            return
        if not isinstance(msg, dict):
            await self._reply(websocket, None, success=False, error="message must be an object")
            return

        action = msg.get("action")
        try:
            if action == "input":
                accepted = await send_terminal_input(
                    self.registry, str(msg.get("pane_id", "")), str(msg.get("data", ""))
                )
                await self._reply(websocket, action, success=True, accepted=accepted)
            elif action == "refresh_size":
                size = TerminalSize.model_validate(msg)
                sent = await refresh_terminal_size(self.registry, str(msg.get("pane_id", "")), size)
                await self._reply(websocket, action, success=True, sent=sent)
            else:
                changed = apply_action(self.workspace, LayoutAction.model_validate(msg))
                await self._reply(websocket, action, success=True, changed=changed)
        except ValidationError as e:
            await self._reply(websocket, action, success=False, error=str(e))
        except (ActionError, LayoutError, TransportError) as e:
            logger.info(f"[WS] {action} rejected: {e}")
            await self._reply(websocket, action, success=False, error=str(e))

    async def _reply(self, websocket: WebSocket, action, success: bool, **extra) -> None:
        await websocket.send_json({"type": "action_result", "action": action, "success": success, **extra})
