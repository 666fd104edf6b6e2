"""FastAPI 应用初始化"""

import asyncio

import uvicorn

from .. import config
from ..layout.workspace import Workspace
from ..render import FileServiceClient
from ..telemetry import get_logger, setup_logging
from ..transport.registry import SessionRegistry
from .server import WebServer
from .terminal import TerminalEndpoint

logger = get_logger(__name__)


def create_app(
    workspace: Workspace | None = None,
    registry: SessionRegistry | None = None,
    file_client: FileServiceClient | None = None,
    terminal: TerminalEndpoint | None = None,
) -> WebServer:
    """创建 Web 应用

    未指定 terminal 且 config.ENABLE_PTY 时挂载默认 PTY peer。
    """
    server = WebServer(workspace or Workspace(), registry=registry, file_client=file_client)
    if terminal is None and config.ENABLE_PTY:
        terminal = TerminalEndpoint()
    if terminal is not None:
        server.setup_terminal_endpoint(terminal)
    return server


async def start_server(host: str = config.HOST, port: int = config.PORT):
    """启动服务器"""
    server = create_app(registry=SessionRegistry(), file_client=FileServiceClient())

    uvicorn_config = uvicorn.Config(server.app, host=host, port=port, log_level=config.LOG_LEVEL.lower())
    uvicorn_server = uvicorn.Server(uvicorn_config)

    logger.info(f"LiteTerm Web Server starting at http://{host}:{port}")

    await uvicorn_server.serve()


def main():
    """入口函数"""
    setup_logging()
    try:
        asyncio.run(start_server())
    except KeyboardInterrupt:
        print("\nServer stopped")
