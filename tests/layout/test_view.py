"""View State 测试"""

from liteterm.layout.engine import close_pane, split_pane
from liteterm.layout.types import Container, Direction, Pane
from liteterm.layout.view import ViewState, effective_node, prune, toggle_maximize


def _tree():
    return Container(id="root", direction=Direction.HORIZONTAL, children=(Pane("a"), Pane("b")))


class TestToggleMaximize:
    def test_maximize(self):
        view = toggle_maximize(ViewState(), "a")
        assert view.maximized_pane_id == "a"

    def test_self_inverse(self):
        original = ViewState()
        assert toggle_maximize(toggle_maximize(original, "a"), "a") == original

    def test_self_inverse_from_maximized(self):
        original = ViewState(maximized_pane_id="b")
        assert toggle_maximize(toggle_maximize(original, "a"), "a") == ViewState(maximized_pane_id=None)

    def test_switch_target(self):
        view = toggle_maximize(ViewState(maximized_pane_id="a"), "b")
        assert view.maximized_pane_id == "b"

    def test_to_dict(self):
        assert ViewState("a").to_dict() == {"maximized_pane_id": "a"}


class TestEffectiveNode:
    def test_not_maximized(self):
        tree = _tree()
        assert effective_node(tree, ViewState()) is tree

    def test_maximized(self):
        tree = _tree()
        assert effective_node(tree, ViewState("b")) is tree.children[1]

    def test_maximized_container(self):
        tree = _tree()
        assert effective_node(tree, ViewState("root")) is tree

    def test_stale_id_falls_back(self):
        tree = close_pane(_tree(), "b")
        assert effective_node(tree, ViewState("b")) is tree

    def test_split_keeps_target_resolvable(self):
        tree = split_pane(_tree(), "a", Direction.VERTICAL)
        assert effective_node(tree, ViewState("a")).id == "a"


class TestPrune:
    def test_prune_stale(self):
        tree = close_pane(_tree(), "b")
        assert prune(ViewState("b"), tree) == ViewState()

    def test_prune_keeps_live(self):
        view = ViewState("a")
        assert prune(view, _tree()) is view

    def test_prune_nothing_maximized(self):
        view = ViewState()
        assert prune(view, _tree()) is view
