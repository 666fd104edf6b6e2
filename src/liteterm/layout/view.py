"""View State - maximize overlay

与布局树正交的单一状态：当前最大化的 pane id。
拆分/改类型不会影响它；渲染时解析为要全屏显示的子树。
"""

from dataclasses import dataclass, replace

from .engine import find_node_by_id
from .types import LayoutNode


@dataclass(frozen=True)
class ViewState:
    """视图状态"""

    maximized_pane_id: str | None = None

    def to_dict(self) -> dict:
        return {"maximized_pane_id": self.maximized_pane_id}


def toggle_maximize(view: ViewState, pane_id: str) -> ViewState:
    """同一 id 再次切换时恢复，否则最大化该 id"""
    if view.maximized_pane_id == pane_id:
        return replace(view, maximized_pane_id=None)
    return replace(view, maximized_pane_id=pane_id)


def effective_node(tree: LayoutNode, view: ViewState) -> LayoutNode:
    """实际渲染的节点

    最大化 id 已设置且仍可解析时返回该节点，否则返回整棵树。
    """
    if view.maximized_pane_id is None:
        return tree
    return find_node_by_id(tree, view.maximized_pane_id) or tree


def prune(view: ViewState, tree: LayoutNode) -> ViewState:
    """清除已无法解析的最大化 id"""
    if view.maximized_pane_id is None:
        return view
    if find_node_by_id(tree, view.maximized_pane_id) is None:
        return replace(view, maximized_pane_id=None)
    return view
