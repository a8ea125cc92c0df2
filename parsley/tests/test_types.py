import pytest

from parsley.exceptions import InvalidInput, MalformedAttributes
from parsley.types import GraphNode, PageView, VertexKind, parse_millis


class TestVertexKind:
    """Test vertex kind resolution from the type property."""

    def test_tagged_kinds(self):
        assert VertexKind.of(GraphNode(id="1", type="device")) == VertexKind.DEVICE
        assert VertexKind.of(GraphNode(id="2", type="domain")) == VertexKind.DOMAIN
        assert VertexKind.of(GraphNode(id="3", type="user")) == VertexKind.USER

    def test_untagged_vertex_is_page_view(self):
        assert GraphNode(id="4").kind == VertexKind.PAGE_VIEW

    def test_missing_vertex_has_no_kind(self):
        assert VertexKind.of(None) is None


class TestPageView:
    """Test the attribute container used to merge request payloads."""

    def test_from_attributes_keeps_values(self):
        page_view = PageView.from_attributes({
            "title": "Home",
            "tabId": 3,
            "pinned": False,
            "tags": ["a", "b"],
        })

        assert page_view.to_dict() == {"title": "Home", "tabId": 3, "pinned": False, "tags": ["a", "b"]}

    def test_reserved_keys_are_dropped(self):
        page_view = PageView.from_attributes({"id": "x", "type": "device", "title": "Home"})

        assert page_view.to_dict() == {"title": "Home"}

    def test_page_open_time_is_coerced(self):
        page_view = PageView.from_attributes({"pageOpenTime": "1500"})

        assert page_view.get_property("pageOpenTime") == 1500

    def test_unparseable_page_open_time(self):
        with pytest.raises(InvalidInput):
            PageView.from_attributes({"pageOpenTime": "yesterday"})

    @pytest.mark.parametrize("attributes", [
        ["not", "a", "mapping"],
        "title=Home",
        {"nested": {"a": 1}},
        {"missing": None},
        {"mixed": [1, {"a": 2}]},
    ])
    def test_malformed_attributes(self, attributes):
        with pytest.raises(MalformedAttributes):
            PageView.from_attributes(attributes)

    def test_from_vertex_includes_id(self):
        node = GraphNode(id="abc", properties={"title": "Home"})

        assert PageView.from_vertex(node).to_dict() == {"id": "abc", "title": "Home"}

    def test_from_vertex_does_not_alias_properties(self):
        node = GraphNode(id="abc", properties={"title": "Home"})
        page_view = PageView.from_vertex(node)
        page_view.set_property("parentId", "p")

        assert "parentId" not in node.properties


def test_parse_millis():
    assert parse_millis(10) == 10
    assert parse_millis(" 42 ") == 42
    assert parse_millis(7.0) == 7
    with pytest.raises(ValueError):
        parse_millis(True)
    with pytest.raises(ValueError):
        parse_millis(None)
