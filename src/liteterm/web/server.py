"""Web 服务器"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from rich.text import Text

from ..errors import LayoutError, TransportError
from ..layout.engine import iter_panes
from ..layout.templates import TEMPLATES
from ..layout.types import ContentType, LayoutNode
from ..layout.workspace import LayoutChange, Workspace
from ..render import FileServiceClient, gather_context, render_svg
from ..telemetry import get_logger, metrics
from ..transport.registry import SessionRegistry
from .handlers import (
    ActionError,
    LayoutAction,
    MessageHandler,
    TerminalInput,
    TerminalSize,
    apply_action,
    refresh_terminal_size,
    send_terminal_input,
)
from .terminal import TerminalEndpoint

logger = get_logger(__name__)


class WebServer:
    """布局服务：REST + WebSocket 广播"""

    def __init__(
        self,
        workspace: Workspace,
        registry: SessionRegistry | None = None,
        file_client: FileServiceClient | None = None,
    ):
        self.app = FastAPI(title="LiteTerm", lifespan=self._lifespan)
        self.workspace = workspace
        self.registry = registry
        self.file_client = file_client
        self.clients: list[WebSocket] = []
        self._broadcasts: set[asyncio.Task] = set()

        templates_dir = Path(__file__).parent.parent / "templates"
        self.templates = Jinja2Templates(directory=str(templates_dir))

        self._handler = MessageHandler(workspace=workspace, registry=registry)

        self._setup_routes()
        if registry is not None:
            registry.bind(workspace)
        workspace.on_change(self._on_layout_change)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        yield
        await self.shutdown()

    def setup_terminal_endpoint(self, endpoint: TerminalEndpoint) -> None:
        """挂载 PTY peer"""
        endpoint.setup_routes(self.app)

    def _on_layout_change(self, change: LayoutChange) -> None:
        """布局变更回调（同步），广播在事件循环中调度"""
        metrics.gauge("layout.panes", sum(1 for _ in iter_panes(change.current)))
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._attach_visible()
        task = asyncio.create_task(self.broadcast(self.workspace.to_dict()))
        self._broadcasts.add(task)
        task.add_done_callback(self._broadcasts.discard)

    def _attach_visible(self) -> LayoutNode:
        """为将要渲染的 Terminal pane 打开会话，返回 effective node"""
        node = self.workspace.effective_node()
        if self.registry is not None:
            for pane in iter_panes(node):
                if pane.content_type is ContentType.TERMINAL:
                    self.registry.attach(pane.id)
        return node

    def _snapshot(self, changed: bool | None = None) -> dict:
        data = self.workspace.to_dict()
        if changed is not None:
            data["changed"] = changed
        return data

    def _setup_routes(self):
        @self.app.get("/", response_class=HTMLResponse)
        async def index(request: Request):
            node = self._attach_visible()
            context = await gather_context(node, self.registry, self.file_client)
            terminals = {
                pane_id: Text.from_ansi(output).plain for pane_id, output in context.terminals.items()
            }
            return self.templates.TemplateResponse(
                request,
                "index.html",
                {
                    "root": node,
                    "maximized_pane_id": self.workspace.view.maximized_pane_id,
                    "terminals": terminals,
                    "previews": context.previews,
                    "listings": context.listings,
                    "errors": context.errors,
                    "templates": TEMPLATES,
                },
            )

        @self.app.get("/api/layout")
        async def get_layout():
            return self._snapshot()

        @self.app.post("/api/layout/action")
        async def layout_action(request: LayoutAction):
            try:
                changed = apply_action(self.workspace, request)
            except (ActionError, LayoutError) as e:
                logger.info(f"[Web] {request.action} rejected: {e}")
                raise HTTPException(status_code=400, detail=str(e)) from e
            return self._snapshot(changed)

        @self.app.get("/api/templates")
        async def get_templates():
            return [template.to_dict() for template in TEMPLATES]

        @self.app.get("/api/layout/svg")
        async def get_layout_svg():
            """获取当前 effective node 的 SVG 渲染图。"""
            node = self._attach_visible()
            context = await gather_context(node, self.registry, self.file_client)
            return Response(
                content=render_svg(node, context),
                media_type="image/svg+xml",
                headers={"Cache-Control": "no-cache"},
            )

        @self.app.get("/api/metrics")
        async def get_metrics(prefix: str = ""):
            """内存指标快照（prefix 如 "transport."）"""
            return metrics.snapshot(prefix)

        @self.app.post("/api/pane/{pane_id}/input")
        async def pane_input(pane_id: str, request: TerminalInput):
            try:
                accepted = await send_terminal_input(self.registry, pane_id, request.data)
            except ActionError as e:
                raise HTTPException(status_code=404, detail=str(e)) from e
            return {"pane_id": pane_id, "accepted": accepted}

        @self.app.post("/api/pane/{pane_id}/refresh_size")
        async def pane_refresh_size(pane_id: str, request: TerminalSize):
            try:
                sent = await refresh_terminal_size(self.registry, pane_id, request)
            except ActionError as e:
                raise HTTPException(status_code=404, detail=str(e)) from e
            except TransportError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e
            return {"pane_id": pane_id, "sent": sent}

        @self.app.websocket("/ws/layout")
        async def websocket_endpoint(websocket: WebSocket):
            await websocket.accept()
            self.clients.append(websocket)
            try:
                self._attach_visible()
                await websocket.send_json(self._snapshot())
                while True:
                    data = await websocket.receive_text()
                    await self._handler.handle(websocket, data)
            except WebSocketDisconnect:
                pass
            finally:
                if websocket in self.clients:
                    self.clients.remove(websocket)

    async def broadcast(self, data: dict):
        """广播消息给所有客户端"""
        for client in list(self.clients):
            try:
                await client.send_json(data)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.debug(f"[Web] drop client: {e}")
                if client in self.clients:
                    self.clients.remove(client)

    async def shutdown(self) -> None:
        """关闭全部会话和文件服务客户端"""
        if self.registry is not None:
            await self.registry.close_all()
        if self.file_client is not None:
            await self.file_client.close()
