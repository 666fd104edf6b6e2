"""Named starting layouts.

Each template builds a brand-new tree with fresh ids on every call, so the
same template can be applied repeatedly without id collisions.
"""

from collections.abc import Callable
from dataclasses import dataclass

from ..core.ids import new_node_id
from ..errors import UnknownTemplateError
from .types import Container, ContentType, Direction, LayoutNode, Pane, PaneConfig


@dataclass(frozen=True)
class LayoutTemplate:
    """A named layout factory."""

    name: str
    description: str
    create: Callable[[], LayoutNode]

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description}


def _terminal(title: str) -> Pane:
    return Pane(id=new_node_id(), content_type=ContentType.TERMINAL, config=PaneConfig(title=title))


def _row(*children: LayoutNode) -> Container:
    return Container(id=new_node_id(), direction=Direction.HORIZONTAL, children=children)


def _column(*children: LayoutNode) -> Container:
    return Container(id=new_node_id(), direction=Direction.VERTICAL, children=children)


def _single_terminal() -> LayoutNode:
    return _terminal("Terminal")


def _split_horizontal() -> LayoutNode:
    return _row(_terminal("Terminal 1"), _terminal("Terminal 2"))


def _grid() -> LayoutNode:
    return _column(
        _row(_terminal("Term TL"), _terminal("Term TR")),
        _row(_terminal("Term BL"), _terminal("Term BR")),
    )


def _ide() -> LayoutNode:
    explorer = Pane(
        id=new_node_id(),
        content_type=ContentType.FILE_EXPLORER,
        config=PaneConfig(title="Explorer"),
    )
    return _row(explorer, _terminal("Terminal"))


TEMPLATES: list[LayoutTemplate] = [
    LayoutTemplate("Single Terminal", "A single full-screen terminal.", _single_terminal),
    LayoutTemplate("Split Horizontal", "Two terminals side by side.", _split_horizontal),
    LayoutTemplate("Grid 2x2", "Four terminals in a grid.", _grid),
    LayoutTemplate("IDE Layout", "Left sidebar with terminal on right.", _ide),
]


def get_template(name: str) -> LayoutTemplate:
    """Look up a template by name.

    Raises:
        UnknownTemplateError: no template has that name
    """
    for template in TEMPLATES:
        if template.name == name:
            return template
    raise UnknownTemplateError(name)
