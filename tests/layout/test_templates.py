"""命名模板测试"""

import pytest

from liteterm.errors import UnknownTemplateError
from liteterm.layout.engine import iter_nodes, iter_panes, validate_tree
from liteterm.layout.templates import TEMPLATES, get_template
from liteterm.layout.types import Container, ContentType, Direction


class TestTemplates:
    def test_names(self):
        assert [t.name for t in TEMPLATES] == [
            "Single Terminal",
            "Split Horizontal",
            "Grid 2x2",
            "IDE Layout",
        ]

    @pytest.mark.parametrize("template", TEMPLATES, ids=lambda t: t.name)
    def test_templates_are_valid(self, template):
        assert validate_tree(template.create()) == []

    @pytest.mark.parametrize("template", TEMPLATES, ids=lambda t: t.name)
    def test_fresh_ids_each_call(self, template):
        first = {n.id for n in iter_nodes(template.create())}
        second = {n.id for n in iter_nodes(template.create())}
        assert first.isdisjoint(second)

    def test_grid(self):
        tree = get_template("Grid 2x2").create()
        assert isinstance(tree, Container)
        assert tree.direction is Direction.VERTICAL
        assert all(child.direction is Direction.HORIZONTAL for child in tree.children)
        assert [p.config.title for p in iter_panes(tree)] == ["Term TL", "Term TR", "Term BL", "Term BR"]

    def test_ide(self):
        tree = get_template("IDE Layout").create()
        explorer, terminal = tree.children
        assert explorer.content_type is ContentType.FILE_EXPLORER
        assert terminal.content_type is ContentType.TERMINAL

    def test_to_dict(self):
        assert get_template("Single Terminal").to_dict() == {
            "name": "Single Terminal",
            "description": "A single full-screen terminal.",
        }

    def test_unknown(self):
        with pytest.raises(UnknownTemplateError) as exc_info:
            get_template("Triple Monitor")
        assert str(exc_info.value) == "unknown template: Triple Monitor"
        assert isinstance(exc_info.value, KeyError)
