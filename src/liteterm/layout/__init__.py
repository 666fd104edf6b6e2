"""Layout 模块

提供布局树的核心组件：
- types: 数据类型定义（Pane, Container, ContentType 等）
- engine: 纯函数布局操作（split/close/retype/set_layout）
- view: 最大化视图状态
- templates: 命名模板
- workspace: 持有树与视图状态的工作区
"""

from .types import (
    NodeKind,
    Direction,
    ContentType,
    PaneConfig,
    Pane,
    Container,
    LayoutNode,
    node_to_dict,
    node_from_dict,
)
from .engine import (
    default_pane,
    iter_nodes,
    iter_panes,
    find_node_by_id,
    find_parent,
    split_pane,
    close_pane,
    change_pane_type,
    open_preview,
    validate_tree,
    check_tree,
    set_layout,
)
from .view import ViewState, toggle_maximize, effective_node
from .templates import TEMPLATES, LayoutTemplate, get_template
from .workspace import Workspace, LayoutChange

__all__ = [
    # Types
    "NodeKind",
    "Direction",
    "ContentType",
    "PaneConfig",
    "Pane",
    "Container",
    "LayoutNode",
    "node_to_dict",
    "node_from_dict",
    # Engine
    "default_pane",
    "iter_nodes",
    "iter_panes",
    "find_node_by_id",
    "find_parent",
    "split_pane",
    "close_pane",
    "change_pane_type",
    "open_preview",
    "validate_tree",
    "check_tree",
    "set_layout",
    # View
    "ViewState",
    "toggle_maximize",
    "effective_node",
    # Templates
    "TEMPLATES",
    "LayoutTemplate",
    "get_template",
    # Workspace
    "Workspace",
    "LayoutChange",
]
