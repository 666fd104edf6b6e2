"""PTY 终端端点 - /ws/term

每个 WebSocket 连接对应一个 shell 进程：
- 客户端 binary 消息按 frame 解码：input 写入 pty，resize 设置窗口大小
- shell 输出原样作为 binary 消息回传
- shell 退出（EOF）时关闭 socket；socket 断开时 kill shell
"""

import asyncio
import contextlib
import fcntl
import os
import pty
import signal
import struct
import termios
from collections.abc import Callable
from typing import Protocol

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from .. import config
from ..telemetry import format_pane_log, get_logger, metrics
from ..transport.frames import InputFrame, ResizeFrame, decode_client_frame

logger = get_logger(__name__)


class TerminalProcess(Protocol):
    """终端进程接口（PtyProcess 或测试替身）"""

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> None: ...

    def resize(self, rows: int, cols: int) -> None: ...

    def close(self) -> None: ...


class PtyProcess:
    """伪终端上的 shell 进程"""

    def __init__(self, pid: int, fd: int):
        self.pid = pid
        self.fd = fd
        self._closed = False

    @classmethod
    def spawn(
        cls,
        shell: str | None = None,
        rows: int = config.PTY_INITIAL_ROWS,
        cols: int = config.PTY_INITIAL_COLS,
    ) -> "PtyProcess":
        """fork 一个 shell，子进程的 stdio 连接到 pty slave"""
        shell = shell or os.environ.get("SHELL") or config.DEFAULT_SHELL
        env = dict(os.environ, TERM=config.PTY_TERM)

        pid, fd = pty.fork()
        if pid == 0:
            try:
                os.execvpe(shell, [shell], env)
            finally:
                os._exit(127)

        process = cls(pid, fd)
        process.resize(rows, cols)
        logger.info(f"[PTY] spawned {shell} (pid={pid})")
        return process

    def read(self, size: int = config.PTY_READ_SIZE) -> bytes:
        """阻塞读取输出；shell 退出后返回 b""（Linux 上 master 读到 EIO）"""
        try:
            return os.read(self.fd, size)
        except OSError:
            return b""

    def write(self, data: bytes) -> None:
        os.write(self.fd, data)

    def resize(self, rows: int, cols: int) -> None:
        """设置窗口大小（rows/cols 至少为 1）"""
        winsize = struct.pack("HHHH", max(rows, 1), max(cols, 1), 0, 0)
        fcntl.ioctl(self.fd, termios.TIOCSWINSZ, winsize)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            os.kill(self.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        try:
            os.waitpid(self.pid, 0)
        except ChildProcessError:
            pass
        try:
            os.close(self.fd)
        except OSError:
            pass
        logger.info(f"[PTY] killed pid={self.pid}")


ProcessFactory = Callable[[], TerminalProcess]


class TerminalEndpoint:
    """/ws/term 的 PTY peer"""

    def __init__(self, process_factory: ProcessFactory | None = None):
        self._process_factory = process_factory or PtyProcess.spawn

    def setup_routes(self, app: FastAPI) -> None:
        """设置 WebSocket 路由"""

        @app.websocket("/ws/term")
        async def terminal_endpoint(websocket: WebSocket):
            await self.handle(websocket)

    async def handle(self, websocket: WebSocket) -> None:
        await websocket.accept()
        pane_id = websocket.query_params.get("pane", "")

        try:
            process = self._process_factory()
        except OSError as e:
            logger.error(format_pane_log("PTY", pane_id, f"spawn failed: {e}"))
            await websocket.close(code=1011)
            return

        metrics.inc("pty.spawned")
        pump = asyncio.create_task(self._pump_output(websocket, process, pane_id))
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                data = message.get("bytes")
                if data is None:
                    continue
                frame = decode_client_frame(data)
                if isinstance(frame, InputFrame):
                    process.write(frame.data)
                elif isinstance(frame, ResizeFrame):
                    process.resize(frame.rows, frame.cols)
                    logger.debug(format_pane_log("PTY", pane_id, f"resize {frame.rows}x{frame.cols}"))
        except WebSocketDisconnect:
            pass
        except OSError as e:
            logger.warning(format_pane_log("PTY", pane_id, f"write failed: {e}"))
        finally:
            pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                try:
                    await pump
                except (WebSocketDisconnect, RuntimeError, OSError) as e:
                    logger.debug(format_pane_log("PTY", pane_id, f"output pump stopped: {e!r}"))
            process.close()

    async def _pump_output(self, websocket: WebSocket, process: TerminalProcess, pane_id: str) -> None:
        loop = asyncio.get_running_loop()
        while True:
            data = await loop.run_in_executor(None, process.read, config.PTY_READ_SIZE)
            if not data:
                break
            await websocket.send_bytes(data)

        logger.info(format_pane_log("PTY", pane_id, "shell exited"))
        await websocket.close()
