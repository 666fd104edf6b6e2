"""PTY 终端端点测试"""

import logging
import os
import queue
import shutil
import threading
import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from liteterm.layout.workspace import Workspace
from liteterm.transport.frames import encode_input, encode_resize
from liteterm.web.app import create_app
from liteterm.web.terminal import PtyProcess, TerminalEndpoint


class FakeProcess:
    """终端进程替身：read 从队列取输出，b"" 表示 EOF"""

    def __init__(self, *initial: bytes):
        self.output: queue.Queue[bytes] = queue.Queue()
        for chunk in initial:
            self.output.put(chunk)
        self.writes: list[bytes] = []
        self.resizes: list[tuple[int, int]] = []
        self.closed = threading.Event()

    def read(self, size: int) -> bytes:
        try:
            return self.output.get(timeout=5)
        except queue.Empty:
            return b""

    def write(self, data: bytes) -> None:
        self.writes.append(data)

    def resize(self, rows: int, cols: int) -> None:
        self.resizes.append((rows, cols))

    def close(self) -> None:
        self.output.put(b"")
        self.closed.set()


class BrokenOutputProcess(FakeProcess):
    """读输出即失败（pty 已不可用）"""

    def __init__(self):
        super().__init__()
        self.failed = threading.Event()

    def read(self, size: int) -> bytes:
        self.failed.set()
        raise OSError("input/output error")


def _client(process_factory) -> TestClient:
    server = create_app(Workspace(), terminal=TerminalEndpoint(process_factory))
    return TestClient(server.app)


class TestTerminalEndpoint:
    def test_frames_applied_and_output_streamed(self):
        process = FakeProcess(b"$ ")

        with _client(lambda: process) as client:
            with client.websocket_connect("/ws/term?pane=p1") as ws:
                assert ws.receive_bytes() == b"$ "
                ws.send_bytes(encode_input("ls\r"))
                ws.send_bytes(encode_resize(40, 120))
                ws.send_bytes(b"\x02\x00")  # short resize, ignored
                ws.send_bytes(b"\x09junk")  # unknown tag, ignored
                ws.send_text("text is ignored")
                process.output.put(b"file.txt\r\n")
                assert ws.receive_bytes() == b"file.txt\r\n"

            assert process.closed.wait(5)

        assert process.writes == [b"ls\r"]
        assert process.resizes == [(40, 120)]

    def test_shell_exit_closes_socket(self):
        process = FakeProcess(b"bye\r\n", b"")

        with _client(lambda: process) as client:
            with client.websocket_connect("/ws/term") as ws:
                assert ws.receive_bytes() == b"bye\r\n"
                with pytest.raises(WebSocketDisconnect):
                    ws.receive_bytes()

            assert process.closed.wait(5)

    def test_output_failure_retrieved_on_disconnect(self, caplog):
        caplog.set_level(logging.DEBUG, logger="liteterm.web.terminal")
        process = BrokenOutputProcess()

        with _client(lambda: process) as client:
            with client.websocket_connect("/ws/term?pane=p1") as ws:
                ws.send_bytes(encode_input("x"))
                assert process.failed.wait(5)
                time.sleep(0.1)

            assert process.closed.wait(5)

        assert process.writes == [b"x"]
        assert any("output pump stopped" in r.getMessage() for r in caplog.records)

    def test_spawn_failure_closes_socket(self):
        def factory():
            raise OSError("no pty available")

        with _client(factory) as client:
            with client.websocket_connect("/ws/term") as ws:
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    ws.receive_bytes()
                assert exc_info.value.code == 1011


@pytest.mark.skipif(not shutil.which("cat") or not hasattr(os, "fork"), reason="needs a POSIX pty")
class TestPtyProcess:
    def test_echo_through_cat(self):
        process = PtyProcess.spawn(shell=shutil.which("cat"))
        try:
            process.write(b"hello\n")
            received = b""
            while b"hello" not in received:
                chunk = process.read(1024)
                if not chunk:
                    break
                received += chunk
            assert b"hello" in received
        finally:
            process.close()

    def test_resize_clamps_to_one(self):
        process = PtyProcess.spawn(shell=shutil.which("cat"))
        try:
            process.resize(0, 0)
        finally:
            process.close()

    def test_close_is_idempotent(self):
        process = PtyProcess.spawn(shell=shutil.which("cat"))
        process.close()
        process.close()
