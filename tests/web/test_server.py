"""Web 服务测试"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from liteterm.errors import FrameError
from liteterm.layout.types import Container, Direction, Pane
from liteterm.layout.workspace import Workspace
from liteterm.transport.frames import encode_input, encode_resize
from liteterm.transport.registry import SessionRegistry
from liteterm.web.app import create_app
from liteterm.web.handlers import ActionError, TerminalSize, refresh_terminal_size


@pytest.fixture
def workspace():
    return Workspace(Pane("root"))


@pytest.fixture
def registry(channel_cls):
    return SessionRegistry(channel_factory=channel_cls)


@pytest.fixture
def server(workspace, registry):
    return create_app(workspace, registry=registry)


@pytest.fixture
def client(server):
    with TestClient(server.app) as test_client:
        yield test_client


def _action(client, **body):
    return client.post("/api/layout/action", json=body)


class TestLayoutApi:
    def test_get_layout(self, client):
        data = client.get("/api/layout").json()
        assert data == {
            "layout": {"id": "root", "type": "pane", "contentType": "terminal", "config": {"title": "Terminal"}},
            "maximized_pane_id": None,
            "effective_id": "root",
        }

    def test_split(self, client, workspace):
        response = _action(client, action="split", pane_id="root", direction="vertical")
        assert response.status_code == 200
        data = response.json()
        assert data["changed"] is True
        assert data["layout"]["type"] == "container"
        assert data["layout"]["direction"] == "vertical"
        assert isinstance(workspace.tree, Container)

    def test_split_default_direction(self, client):
        data = _action(client, action="split", pane_id="root").json()
        assert data["layout"]["direction"] == "horizontal"

    def test_noop_reports_unchanged(self, client):
        data = _action(client, action="close", pane_id="missing").json()
        assert data["changed"] is False

    def test_change_type(self, client):
        data = _action(client, action="change_type", pane_id="root", content_type="file-explorer").json()
        assert data["layout"]["contentType"] == "file-explorer"
        assert data["layout"]["config"]["title"] == "File Explorer"

    def test_open_preview(self, client):
        data = _action(client, action="open_preview", pane_id="root", file_path="/a.md").json()
        assert data["layout"]["config"]["filePath"] == "/a.md"

    def test_maximize(self, client):
        data = _action(client, action="maximize", pane_id="root").json()
        assert data["maximized_pane_id"] == "root"
        data = _action(client, action="maximize", pane_id="root").json()
        assert data["maximized_pane_id"] is None

    def test_apply_template(self, client):
        data = _action(client, action="apply_template", template="Split Horizontal").json()
        assert data["changed"] is True
        assert len(data["layout"]["children"]) == 2

    def test_unknown_template(self, client, workspace):
        response = _action(client, action="apply_template", template="nope")
        assert response.status_code == 400
        assert response.json() == {"detail": "unknown template: nope"}
        assert workspace.tree.id == "root"

    def test_set_layout(self, client):
        layout = {
            "id": "c",
            "type": "container",
            "direction": "horizontal",
            "children": [{"id": "a", "type": "pane"}, {"id": "b", "type": "pane", "contentType": "empty"}],
        }
        data = _action(client, action="set_layout", layout=layout).json()
        assert data["layout"]["id"] == "c"
        assert data["layout"]["children"][1]["config"]["title"] == "Empty"

    def test_set_invalid_layout(self, client, workspace):
        layout = {"id": "c", "type": "container", "direction": "horizontal", "children": [{"id": "a", "type": "pane"}]}
        response = _action(client, action="set_layout", layout=layout)
        assert response.status_code == 400
        assert "invalid layout" in response.json()["detail"]
        assert workspace.tree.id == "root"

    def test_missing_field(self, client):
        response = _action(client, action="split")
        assert response.status_code == 400
        assert response.json()["detail"] == "split requires pane_id"

    def test_unknown_action(self, client):
        assert _action(client, action="explode", pane_id="root").status_code == 422

    def test_templates(self, client):
        names = [t["name"] for t in client.get("/api/templates").json()]
        assert names == ["Single Terminal", "Split Horizontal", "Grid 2x2", "IDE Layout"]


class TestRendering:
    def test_index(self, client):
        _action(client, action="split", pane_id="root")
        response = client.get("/")
        assert response.status_code == 200
        assert 'data-id="root"' in response.text
        assert "container horizontal" in response.text

    def test_index_renders_maximized_only(self, client, workspace):
        _action(client, action="split", pane_id="root")
        other = workspace.tree.children[1].id
        _action(client, action="maximize", pane_id=other)

        html = client.get("/").text
        assert f'data-id="{other}"' in html
        assert 'data-id="root"' not in html

    def test_svg(self, client):
        response = client.get("/api/layout/svg")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/svg+xml"
        assert response.text.startswith("<svg")


class TestTerminalApi:
    def test_render_attaches_session(self, client, registry):
        client.get("/api/layout/svg")
        assert "root" in registry

    def test_input(self, client, registry):
        client.get("/api/layout/svg")
        response = client.post("/api/pane/root/input", json={"data": "ls\r"})
        assert response.json() == {"pane_id": "root", "accepted": True}
        assert registry.get("root")._channel.sent[-1] == encode_input("ls\r")

    def test_input_unknown_pane(self, client):
        response = client.post("/api/pane/nope/input", json={"data": "x"})
        assert response.status_code == 404

    def test_refresh_size(self, client, registry):
        client.get("/api/layout/svg")
        response = client.post("/api/pane/root/refresh_size", json={"rows": 40, "cols": 120})
        assert response.json() == {"pane_id": "root", "sent": True}
        assert registry.get("root")._channel.sent[-1] == encode_resize(40, 120)

    def test_refresh_size_out_of_range(self, client, registry):
        client.get("/api/layout/svg")
        channel = registry.get("root")._channel

        response = client.post("/api/pane/root/refresh_size", json={"rows": 70000, "cols": 80})
        assert response.status_code == 422

        # 非法尺寸不残留在 view 上
        response = client.post("/api/pane/root/refresh_size", json={})
        assert response.json() == {"pane_id": "root", "sent": True}
        assert channel.sent[-1] == encode_resize(*registry.get("root").view.fit())
        assert registry.get("root").view.fit() != (70000, 80)

    def test_retype_terminates_session(self, client, registry):
        client.get("/api/layout/svg")
        session = registry.get("root")
        _action(client, action="change_type", pane_id="root", content_type="empty")
        assert "root" not in registry
        assert not session.is_open


class TestLayoutWebSocket:
    def test_snapshot_on_connect(self, client):
        with client.websocket_connect("/ws/layout") as ws:
            data = ws.receive_json()
            assert data["effective_id"] == "root"

    def test_action_and_broadcast(self, client):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            ws.send_json({"action": "split", "pane_id": "root", "direction": "horizontal"})
            messages = [ws.receive_json(), ws.receive_json()]

        results = [m for m in messages if m.get("type") == "action_result"]
        snapshots = [m for m in messages if "layout" in m]
        assert results == [{"type": "action_result", "action": "split", "success": True, "changed": True}]
        assert snapshots[0]["layout"]["type"] == "container"

    def test_broadcast_reaches_other_clients(self, client):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            _action(client, action="maximize", pane_id="root")
            assert ws.receive_json()["maximized_pane_id"] == "root"

    def test_rejected_action(self, client):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            ws.send_json({"action": "apply_template", "template": "nope"})
            result = ws.receive_json()
            assert result["success"] is False
            assert result["error"] == "unknown template: nope"

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            ws.send_text("not json")
            assert ws.receive_json() == {
                "type": "action_result",
                "action": None,
                "success": False,
                "error": "invalid json",
            }

    def test_terminal_input(self, client, registry):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            ws.send_json({"action": "input", "pane_id": "root", "data": "pwd\r"})
            result = ws.receive_json()
            assert result["success"] is True
        assert registry.get("root")._channel.sent[-1] == encode_input("pwd\r")

    def test_terminal_input_without_session(self, client):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            ws.send_json({"action": "input", "pane_id": "nope", "data": "x"})
            result = ws.receive_json()
            assert result["success"] is False

    def test_refresh_size_out_of_range(self, client, registry):
        with client.websocket_connect("/ws/layout") as ws:
            ws.receive_json()
            ws.send_json({"action": "refresh_size", "pane_id": "root", "rows": -1, "cols": 80})
            result = ws.receive_json()
            assert result["action"] == "refresh_size"
            assert result["success"] is False

            # 连接仍可用
            ws.send_json({"action": "refresh_size", "pane_id": "root", "rows": 30, "cols": 100})
            assert ws.receive_json()["success"] is True
        assert registry.get("root")._channel.sent[-1] == encode_resize(30, 100)


def test_create_app_with_split_workspace(channel_cls):
    workspace = Workspace(
        Container(id="c", direction=Direction.VERTICAL, children=(Pane("a"), Pane("b")))
    )
    server = create_app(workspace, registry=SessionRegistry(channel_factory=channel_cls))
    with TestClient(server.app) as client:
        assert client.get("/api/layout").json()["layout"]["id"] == "c"


class TestRefreshTerminalSize:
    @pytest.mark.asyncio
    async def test_frame_error_restores_view(self, registry):
        session = registry.attach("root")
        for _ in range(5):
            await asyncio.sleep(0)
        before = session.view.fit()

        # 绕过模型校验，直接给出超出 u16 的尺寸
        size = TerminalSize.model_construct(rows=70000, cols=80)
        with pytest.raises(FrameError):
            await refresh_terminal_size(registry, "root", size)

        assert session.view.fit() == before
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_unknown_pane(self, registry):
        with pytest.raises(ActionError):
            await refresh_terminal_size(registry, "nope", TerminalSize())


class TestMetricsApi:
    def test_snapshot_after_layout_and_input(self, client):
        client.get("/api/layout/svg")
        client.post("/api/pane/root/input", json={"data": "ls\r"})
        _action(client, action="split", pane_id="root")

        data = client.get("/api/metrics").json()
        assert data["enabled"] is True
        assert data["counters"]["layout.split"] == {"": 1}
        assert data["counters"]["transport.frames_sent"]["kind=input"] == 1
        assert data["gauges"]["layout.panes"] == {"": 2}

    def test_prefix_filter(self, client):
        _action(client, action="split", pane_id="root")
        data = client.get("/api/metrics", params={"prefix": "transport."}).json()
        assert "layout.split" not in data["counters"]
        assert all(name.startswith("transport.") for name in data["counters"])
