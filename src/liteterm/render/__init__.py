"""Layout rendering module."""

from .files import FileEntry, FileServiceClient
from .renderer import (
    RENDERERS,
    RenderContext,
    gather_context,
    render_layout,
    render_pane,
    render_svg,
)

__all__ = [
    "RENDERERS",
    "RenderContext",
    "render_pane",
    "render_layout",
    "render_svg",
    "gather_context",
    "FileEntry",
    "FileServiceClient",
]
