"""Layout renderer using Rich library.

Content types map to renderers through a closed dispatch table; the table is
checked against ContentType at import time so an unhandled type cannot exist
at runtime. Containers map onto rich Layout splits:

- horizontal -> split_row (children side by side)
- vertical   -> split_column (children stacked)
"""

import io
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from rich.console import Console, Group, RenderableType
from rich.layout import Layout
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from .. import config
from ..core.ids import short_id
from ..errors import FileServiceError
from ..layout.engine import iter_panes
from ..layout.types import ContentType, Direction, LayoutNode, Pane
from ..telemetry import get_logger
from ..transport.registry import SessionRegistry
from ..transport.session import BufferTerminalView
from .files import FileEntry, FileServiceClient

logger = get_logger(__name__)

# XML 1.0 允许的字符范围
# #x9 | #xA | #xD | [#x20-#xD7FF] | [#xE000-#xFFFD] | [#x10000-#x10FFFF]
_INVALID_XML_CHARS_RE = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1a\x1c-\x1f\x7f-\x9f\ud800-\udfff\ufffe\uffff]"
)


def _sanitize_for_xml(text: str) -> str:
    """移除 XML 中不允许的字符（保留 ESC 供 ANSI 解析）。"""
    return _INVALID_XML_CHARS_RE.sub("", text)


@dataclass
class RenderContext:
    """Content fetched ahead of rendering, keyed by pane id."""

    terminals: dict[str, str] = field(default_factory=dict)
    listings: dict[str, list[FileEntry]] = field(default_factory=dict)
    previews: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    terminal_lines: int = config.TERMINAL_ROWS


Renderer = Callable[[Pane, RenderContext], RenderableType]


def _render_terminal(pane: Pane, context: RenderContext) -> RenderableType:
    output = context.terminals.get(pane.id)
    if output is None:
        return Text("no session", style="dim italic")
    lines = output.splitlines()[-context.terminal_lines:]
    return Text.from_ansi(_sanitize_for_xml("\n".join(lines)))


def _render_file_explorer(pane: Pane, context: RenderContext) -> RenderableType:
    if pane.id in context.errors:
        return Text(context.errors[pane.id], style="red")
    entries = context.listings.get(pane.id)
    if entries is None:
        return Text("loading...", style="dim italic")

    table = Table(box=None, show_header=False, expand=True, pad_edge=False)
    table.add_column("name", ratio=1, no_wrap=True)
    table.add_column("size", justify="right")
    for entry in entries:
        if entry.is_dir:
            table.add_row(Text(f"{entry.name}/", style="bold blue"), "")
        else:
            table.add_row(entry.name, str(entry.size))
    location = Text(pane.config.file_path or "/", style="dim")
    return Group(location, table)


def _render_preview(pane: Pane, context: RenderContext) -> RenderableType:
    file_path = pane.config.file_path
    if not file_path:
        return Text("no file selected", style="dim italic")
    if pane.id in context.errors:
        return Text(context.errors[pane.id], style="red")
    content = context.previews.get(pane.id)
    if content is None:
        return Text(file_path, style="dim")

    suffix = PurePosixPath(file_path).suffix.lower()
    if suffix in (".md", ".markdown"):
        return Markdown(content)
    return Syntax(content, Syntax.guess_lexer(file_path, code=content), line_numbers=True)


def _render_empty(pane: Pane, context: RenderContext) -> RenderableType:
    return Text("")


RENDERERS: dict[ContentType, Renderer] = {
    ContentType.TERMINAL: _render_terminal,
    ContentType.FILE_EXPLORER: _render_file_explorer,
    ContentType.PREVIEW: _render_preview,
    ContentType.EMPTY: _render_empty,
}

_unhandled = set(ContentType) - set(RENDERERS)
if _unhandled:
    raise RuntimeError(f"no renderer for {sorted(c.value for c in _unhandled)}")


def render_pane(pane: Pane, context: RenderContext) -> Panel:
    """Render one pane inside a titled panel."""
    body = RENDERERS[pane.content_type](pane, context)
    return Panel(
        body,
        title=pane.config.title,
        subtitle=short_id(pane.id),
        subtitle_align="right",
        border_style="green" if pane.content_type is ContentType.TERMINAL else "blue",
    )


def render_layout(node: LayoutNode, context: RenderContext) -> Layout:
    """Render a layout subtree recursively."""
    layout = Layout(name=node.id)
    if isinstance(node, Pane):
        layout.update(render_pane(node, context))
        return layout

    children = [render_layout(child, context) for child in node.children]
    if node.direction is Direction.HORIZONTAL:
        layout.split_row(*children)
    else:
        layout.split_column(*children)
    return layout


def render_svg(
    node: LayoutNode,
    context: RenderContext,
    width: int = config.SVG_WIDTH,
    height: int = config.SVG_HEIGHT,
) -> str:
    """将布局渲染为 SVG。

    Args:
        node: 要渲染的节点（通常为 effective node）
        context: 预取的内容
        width: 宽度（字符数）
        height: 高度（行数）
    """
    console = Console(
        record=True,
        width=width,
        height=height,
        file=io.StringIO(),
        force_terminal=True,
        color_system="truecolor",
    )
    console.print(render_layout(node, context))
    return console.export_svg(title="LiteTerm")


async def gather_context(
    node: LayoutNode,
    registry: SessionRegistry | None = None,
    file_client: FileServiceClient | None = None,
) -> RenderContext:
    """Fetch terminal output, listings and previews for every pane under node."""
    context = RenderContext()

    for pane in iter_panes(node):
        if pane.content_type is ContentType.TERMINAL:
            session = registry.get(pane.id) if registry is not None else None
            if session is not None and isinstance(session.view, BufferTerminalView):
                context.terminals[pane.id] = session.view.text()

        elif pane.content_type is ContentType.FILE_EXPLORER and file_client is not None:
            try:
                context.listings[pane.id] = await file_client.list_dir(pane.config.file_path or "")
            except FileServiceError as e:
                logger.warning(f"[Render] listing for {short_id(pane.id)} failed: {e}")
                context.errors[pane.id] = str(e)

        elif (
            pane.content_type is ContentType.PREVIEW
            and pane.config.file_path
            and file_client is not None
        ):
            try:
                content = await file_client.read_text(pane.config.file_path)
                context.previews[pane.id] = content[: config.PREVIEW_MAX_CHARS]
            except FileServiceError as e:
                logger.warning(f"[Render] preview for {short_id(pane.id)} failed: {e}")
                context.errors[pane.id] = str(e)

    return context
