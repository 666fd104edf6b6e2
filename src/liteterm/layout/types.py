"""Layout 数据类型定义

包含：
- NodeKind / Direction / ContentType: 封闭枚举（值即前端使用的字符串）
- PaneConfig: pane 显示配置
- Pane / Container: 布局树节点（不可变）
- node_to_dict / node_from_dict: 与前端 JSON 结构互转
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from ..errors import LayoutError


class NodeKind(Enum):
    """节点种类"""

    CONTAINER = "container"
    PANE = "pane"


class Direction(Enum):
    """拆分方向

    - HORIZONTAL: 子节点左右排列
    - VERTICAL: 子节点上下排列
    """

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class ContentType(Enum):
    """Pane 内容类型（封闭集合）"""

    TERMINAL = "terminal"
    FILE_EXPLORER = "file-explorer"
    PREVIEW = "preview"
    EMPTY = "empty"

    @property
    def title(self) -> str:
        """切换类型后使用的固定标题"""
        titles = {
            ContentType.TERMINAL: "Terminal",
            ContentType.FILE_EXPLORER: "File Explorer",
            ContentType.PREVIEW: "Preview",
            ContentType.EMPTY: "Empty",
        }
        return titles[self]


@dataclass(frozen=True)
class PaneConfig:
    """Pane 显示配置

    Attributes:
        title: 显示标题
        file_path: Preview 使用的文件路径
        terminal_id: 终端会话标识（由渲染层写入）
    """

    title: str = "Terminal"
    file_path: str | None = None
    terminal_id: str | None = None


@dataclass(frozen=True)
class Pane:
    """叶子节点：承载一种内容类型"""

    id: str
    content_type: ContentType = ContentType.TERMINAL
    config: PaneConfig = field(default_factory=PaneConfig)

    kind: ClassVar[NodeKind] = NodeKind.PANE


@dataclass(frozen=True)
class Container:
    """内部节点：按方向排列 ≥2 个子节点"""

    id: str
    direction: Direction
    children: tuple["LayoutNode", ...]

    kind: ClassVar[NodeKind] = NodeKind.CONTAINER


LayoutNode = Pane | Container


# === 序列化 ===


def _config_to_dict(config: PaneConfig) -> dict[str, Any]:
    data: dict[str, Any] = {"title": config.title}
    if config.file_path is not None:
        data["filePath"] = config.file_path
    if config.terminal_id is not None:
        data["terminalId"] = config.terminal_id
    return data


def node_to_dict(node: LayoutNode) -> dict[str, Any]:
    """转换为前端使用的 JSON 结构"""
    if isinstance(node, Pane):
        return {
            "id": node.id,
            "type": NodeKind.PANE.value,
            "contentType": node.content_type.value,
            "config": _config_to_dict(node.config),
        }
    return {
        "id": node.id,
        "type": NodeKind.CONTAINER.value,
        "direction": node.direction.value,
        "children": [node_to_dict(child) for child in node.children],
    }


def _enum_value(enum_cls, value: Any, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise LayoutError(f"unknown {what}: {value!r}") from None


def node_from_dict(data: Any) -> LayoutNode:
    """从 JSON 结构解析布局树

    忽略 advisory 的 parent 字段；未知字段一律忽略。

    Raises:
        LayoutError: 文档结构错误
    """
    if not isinstance(data, dict):
        raise LayoutError(f"layout node must be an object, got {type(data).__name__}")

    node_id = data.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise LayoutError("layout node is missing an id")

    kind = _enum_value(NodeKind, data.get("type"), "node type")

    if kind is NodeKind.PANE:
        if data.get("children"):
            raise LayoutError(f"pane {node_id} cannot have children")
        content_type = _enum_value(
            ContentType, data.get("contentType", ContentType.TERMINAL.value), "content type"
        )
        raw_config = data.get("config") or {}
        if not isinstance(raw_config, dict):
            raise LayoutError(f"pane {node_id} config must be an object")
        config = PaneConfig(
            title=raw_config.get("title") or content_type.title,
            file_path=raw_config.get("filePath"),
            terminal_id=raw_config.get("terminalId"),
        )
        return Pane(id=node_id, content_type=content_type, config=config)

    direction = _enum_value(Direction, data.get("direction"), "direction")
    children = data.get("children")
    if not isinstance(children, list):
        raise LayoutError(f"container {node_id} children must be a list")
    return Container(
        id=node_id,
        direction=direction,
        children=tuple(node_from_dict(child) for child in children),
    )
