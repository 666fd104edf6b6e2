"""Layout Tree Engine

纯函数 (tree, args) -> tree'：
- 不修改任何节点，只重建 root 到目标节点路径上的祖先
- 路径之外的兄弟节点原样复用（structural sharing）
- 目标不存在或类型不符时返回原对象（``result is tree``）

关闭后的收缩规则：
| 父容器剩余子节点 | 处理 |
|------------------|------|
| 0 | 父容器替换为新的默认 Terminal pane |
| 1 | 父容器替换为唯一剩余子节点（提升一层） |
| ≥2 | 保留父容器，移除该子节点，其余顺序不变 |
"""

from collections.abc import Callable, Iterator
from dataclasses import replace

from ..core.ids import new_node_id, short_id
from ..errors import InvalidLayoutError
from ..telemetry import get_logger, metrics
from .types import Container, ContentType, Direction, LayoutNode, Pane, PaneConfig

logger = get_logger(__name__)

# (container, child index) 链，从 root 指向目标
Path = list[tuple[Container, int]]


def default_pane() -> Pane:
    """新的默认 Terminal pane（新 id）"""
    return Pane(
        id=new_node_id(),
        content_type=ContentType.TERMINAL,
        config=PaneConfig(title=ContentType.TERMINAL.title),
    )


# === 查找 ===


def iter_nodes(tree: LayoutNode) -> Iterator[LayoutNode]:
    """前序遍历所有节点（子节点按下标顺序）"""
    yield tree
    if isinstance(tree, Container):
        for child in tree.children:
            yield from iter_nodes(child)


def iter_panes(tree: LayoutNode) -> Iterator[Pane]:
    """前序遍历所有 pane"""
    for node in iter_nodes(tree):
        if isinstance(node, Pane):
            yield node


def find_node_by_id(tree: LayoutNode, node_id: str | None) -> LayoutNode | None:
    """深度优先查找节点，未找到返回 None"""
    if node_id is None:
        return None
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def _locate(node: LayoutNode, target_id: str) -> Path | None:
    if node.id == target_id:
        return []
    if isinstance(node, Container):
        for index, child in enumerate(node.children):
            sub_path = _locate(child, target_id)
            if sub_path is not None:
                return [(node, index), *sub_path]
    return None


def find_parent(tree: LayoutNode, node_id: str) -> tuple[Container, int] | None:
    """自顶向下重新计算 parent-of(id)

    Returns:
        (父容器, 在 children 中的下标)；目标为 root 或不存在时返回 None
    """
    path = _locate(tree, node_id)
    if not path:
        return None
    return path[-1]


def _splice(path: Path, replacement: LayoutNode) -> LayoutNode:
    """沿路径自底向上重建祖先，把目标位置换成 replacement"""
    node = replacement
    for container, index in reversed(path):
        children = container.children[:index] + (node,) + container.children[index + 1:]
        node = replace(container, children=children)
    return node


def _rewrite_pane(
    tree: LayoutNode,
    target_id: str,
    op: str,
    rewrite: Callable[[Pane], LayoutNode],
) -> LayoutNode:
    path = _locate(tree, target_id)
    if path is None:
        logger.debug(f"[Engine] {op}: {short_id(target_id)} not found")
        metrics.inc("layout.noop", {"op": op})
        return tree

    target = path[-1][0].children[path[-1][1]] if path else tree
    if not isinstance(target, Pane):
        logger.debug(f"[Engine] {op}: {short_id(target_id)} is a container")
        metrics.inc("layout.noop", {"op": op})
        return tree

    metrics.inc(f"layout.{op}")
    return _splice(path, rewrite(target))


# === 结构操作 ===


def split_pane(tree: LayoutNode, target_id: str, direction: Direction) -> LayoutNode:
    """拆分 pane

    目标 pane 原样成为 children[0]，children[1] 为新的 Terminal pane。
    只有 pane 可以被拆分。
    """

    def rewrite(pane: Pane) -> LayoutNode:
        new_pane = default_pane()
        container = Container(
            id=new_node_id(),
            direction=direction,
            children=(pane, new_pane),
        )
        logger.debug(
            f"[Engine] split {short_id(pane.id)} {direction.value} -> "
            f"container {short_id(container.id)} + pane {short_id(new_pane.id)}"
        )
        return container

    return _rewrite_pane(tree, target_id, "split", rewrite)


def close_pane(tree: LayoutNode, target_id: str) -> LayoutNode:
    """关闭节点并重新填充布局

    - 目标为 root：整棵树替换为新的默认 Terminal pane
    - 否则从父容器移除，按收缩规则处理父容器
    """
    if tree.id == target_id:
        logger.debug(f"[Engine] close root {short_id(target_id)}, restoring default pane")
        metrics.inc("layout.close")
        return default_pane()

    path = _locate(tree, target_id)
    if path is None:
        logger.debug(f"[Engine] close: {short_id(target_id)} not found")
        metrics.inc("layout.noop", {"op": "close"})
        return tree

    parent, index = path[-1]
    remaining = parent.children[:index] + parent.children[index + 1:]

    if not remaining:
        # 仅在父容器本身已违反不变量（单子节点）时出现
        logger.warning(f"[Engine] container {short_id(parent.id)} emptied, replacing with default pane")
        refill: LayoutNode = default_pane()
    elif len(remaining) == 1:
        refill = remaining[0]
        logger.debug(f"[Engine] collapse {short_id(parent.id)}, promote {short_id(refill.id)}")
    else:
        refill = replace(parent, children=remaining)

    metrics.inc("layout.close")
    return _splice(path[:-1], refill)


def change_pane_type(tree: LayoutNode, target_id: str, content_type: ContentType) -> LayoutNode:
    """改变 pane 内容类型

    重置 config.title 为类型固定名称，保留 id 及其它 config 字段。
    """

    def rewrite(pane: Pane) -> LayoutNode:
        return replace(
            pane,
            content_type=content_type,
            config=replace(pane.config, title=content_type.title),
        )

    return _rewrite_pane(tree, target_id, "retype", rewrite)


def open_preview(tree: LayoutNode, target_id: str, file_path: str) -> LayoutNode:
    """在指定 pane 中预览文件（切换为 Preview 并写入 file_path）"""

    def rewrite(pane: Pane) -> LayoutNode:
        return replace(
            pane,
            content_type=ContentType.PREVIEW,
            config=replace(pane.config, title=ContentType.PREVIEW.title, file_path=file_path),
        )

    return _rewrite_pane(tree, target_id, "preview", rewrite)


# === 整树替换 ===


def validate_tree(tree: LayoutNode) -> list[str]:
    """检查结构不变量，返回违规描述列表（空列表表示合法）"""
    problems: list[str] = []
    seen: set[str] = set()

    for node in iter_nodes(tree):
        if node.id in seen:
            problems.append(f"duplicate id {node.id}")
        seen.add(node.id)

        if isinstance(node, Container) and len(node.children) < 2:
            problems.append(f"container {node.id} has {len(node.children)} children")

    return problems


def check_tree(tree: LayoutNode) -> LayoutNode:
    """校验并返回 tree

    Raises:
        InvalidLayoutError: 违反结构不变量
    """
    problems = validate_tree(tree)
    if problems:
        raise InvalidLayoutError(problems)
    return tree


def set_layout(tree: LayoutNode, new_tree: LayoutNode) -> LayoutNode:
    """整树替换（模板应用）

    不合法的模板被拒绝，当前树保持不变。

    Raises:
        InvalidLayoutError: new_tree 违反结构不变量
    """
    check_tree(new_tree)
    logger.debug(f"[Engine] set layout {short_id(tree.id)} -> {short_id(new_tree.id)}")
    metrics.inc("layout.set")
    return new_tree
