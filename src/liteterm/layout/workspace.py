"""Workspace - 布局树与视图状态的唯一持有者

职责：
- 持有当前布局树快照和 ViewState
- 提供窄的变更 API（全部同步，调用 engine 纯函数后整体替换快照）
- 变更后同步通知监听者（SessionRegistry、WebServer 广播等）

不负责：
- 打开/关闭终端传输（由 SessionRegistry 监听变化完成）
- 渲染
"""

from collections.abc import Callable
from dataclasses import dataclass

from ..telemetry import get_logger
from . import engine, view as view_ops
from .templates import get_template
from .types import ContentType, Direction, LayoutNode, node_to_dict
from .view import ViewState

logger = get_logger(__name__)


@dataclass(frozen=True)
class LayoutChange:
    """一次已生效的变更"""

    previous: LayoutNode
    current: LayoutNode
    view: ViewState
    action: str


ChangeListener = Callable[[LayoutChange], None]


class Workspace:
    """布局工作区

    Attributes:
        tree: 当前布局树（只读快照）
        view: 当前视图状态
    """

    def __init__(self, tree: LayoutNode | None = None, view: ViewState | None = None):
        self._tree: LayoutNode = engine.check_tree(tree) if tree is not None else engine.default_pane()
        self._view = view or ViewState()
        self._listeners: list[ChangeListener] = []

    @property
    def tree(self) -> LayoutNode:
        return self._tree

    @property
    def view(self) -> ViewState:
        return self._view

    def on_change(self, listener: ChangeListener) -> None:
        """注册变更监听"""
        self._listeners.append(listener)

    # === 变更 API ===

    def split_pane(self, pane_id: str, direction: Direction) -> bool:
        return self._apply(engine.split_pane(self._tree, pane_id, direction), "split")

    def close_pane(self, node_id: str) -> bool:
        return self._apply(engine.close_pane(self._tree, node_id), "close")

    def change_pane_type(self, pane_id: str, content_type: ContentType) -> bool:
        return self._apply(engine.change_pane_type(self._tree, pane_id, content_type), "retype")

    def open_preview(self, pane_id: str, file_path: str) -> bool:
        return self._apply(engine.open_preview(self._tree, pane_id, file_path), "preview")

    def set_layout(self, tree: LayoutNode) -> bool:
        """整树替换

        Raises:
            InvalidLayoutError: tree 违反结构不变量（当前树保持不变）
        """
        return self._apply(engine.set_layout(self._tree, tree), "set_layout")

    def apply_template(self, name: str) -> bool:
        """应用命名模板

        Raises:
            UnknownTemplateError: 模板不存在
        """
        return self.set_layout(get_template(name).create())

    def toggle_maximize(self, pane_id: str) -> bool:
        new_view = view_ops.toggle_maximize(self._view, pane_id)
        self._view = new_view
        logger.debug(f"[Workspace] maximized -> {new_view.maximized_pane_id}")
        self._notify(LayoutChange(self._tree, self._tree, new_view, "maximize"))
        return True

    # === 查询 ===

    def find_node_by_id(self, node_id: str) -> LayoutNode | None:
        return engine.find_node_by_id(self._tree, node_id)

    def effective_node(self) -> LayoutNode:
        return view_ops.effective_node(self._tree, self._view)

    def snapshot(self) -> tuple[LayoutNode, ViewState]:
        """同一渲染周期读取的原子快照"""
        return self._tree, self._view

    def to_dict(self) -> dict:
        tree, view = self.snapshot()
        return {
            "layout": node_to_dict(tree),
            "maximized_pane_id": view.maximized_pane_id,
            "effective_id": view_ops.effective_node(tree, view).id,
        }

    # === 内部 ===

    def _apply(self, new_tree: LayoutNode, action: str) -> bool:
        """替换快照；no-op（engine 返回原对象）时不通知"""
        if new_tree is self._tree:
            return False

        previous = self._tree
        self._tree = new_tree
        # 被关闭的最大化 pane 不保留陈旧 id
        self._view = view_ops.prune(self._view, new_tree)
        self._notify(LayoutChange(previous, new_tree, self._view, action))
        return True

    def _notify(self, change: LayoutChange) -> None:
        for listener in self._listeners:
            try:
                listener(change)
            except Exception as e:
                logger.error(f"[Workspace] listener error on {change.action}: {e}")
