import pytest
from typing import Dict, Any, Generator
from unittest.mock import MagicMock

from parsley.handlers import DomainResolver, PageViewHandler, SearchHandler
from parsley.types import Direction, OWNS, VIEWED


@pytest.fixture
def neo4j_client(neo4j_settings: Dict[str, Any]) -> Generator:
    """Neo4j client against a live server; skipped when none is reachable."""
    from parsley.graph.neo4j_client import Neo4jClient

    try:
        client = Neo4jClient(**neo4j_settings)
    except Exception as e:
        pytest.skip(f"Neo4j not available: {e}")

    client.clear_database()
    yield client

    # Cleanup: Clear test data
    client.clear_database()
    client.close()


class TestNeo4jClient:
    """Test Neo4j client functionality."""

    def test_vertex_round_trip(self, neo4j_client):
        node = neo4j_client.add_vertex({"type": "device", "name": "phone"})

        fetched = neo4j_client.get_vertex(node.id)

        assert fetched.id == node.id
        assert fetched.type == "device"
        assert fetched.properties["name"] == "phone"
        assert neo4j_client.get_vertex("missing") is None

    def test_set_properties_merges(self, neo4j_client):
        node = neo4j_client.add_vertex({"title": "Old", "tabId": 1})

        updated = neo4j_client.set_properties(node.id, {"title": "New"})

        assert updated.properties["title"] == "New"
        assert updated.properties["tabId"] == 1
        assert neo4j_client.set_properties("missing", {"a": 1}) is None

    def test_edges_and_neighbors(self, neo4j_client):
        user = neo4j_client.add_vertex({"type": "user"})
        device = neo4j_client.add_vertex({"type": "device"})

        neo4j_client.add_edge(OWNS, user.id, device.id)
        neo4j_client.add_edge(OWNS, user.id, device.id)

        assert [n.id for n in neo4j_client.get_neighbors(user.id, Direction.OUT, OWNS)] == [device.id]
        assert [n.id for n in neo4j_client.get_neighbors(device.id, Direction.IN, OWNS)] == [user.id]
        assert neo4j_client.get_database_stats()["edges"] == {OWNS: 1}

    def test_ingest_and_search(self, neo4j_client):
        """End-to-end ingest and search on the Neo4j backend."""
        user = neo4j_client.add_vertex({"type": "user"})
        device = neo4j_client.add_vertex({"type": "device"})
        neo4j_client.add_edge(OWNS, user.id, device.id)
        handler = PageViewHandler(neo4j_client, DomainResolver(neo4j_client))

        first = handler.create_page_view({
            "deviceGuid": device.id, "pageOpenTime": 1000, "pageUrl": "http://www.example.com/a",
        })["id"]
        second = handler.create_page_view({
            "deviceGuid": device.id, "pageOpenTime": 900_000, "pageUrl": "https://example.com/b",
            "predecessor": first,
        })["id"]

        assert len(neo4j_client.get_vertices("domain", "example.com")) == 1
        assert len(neo4j_client.get_neighbors(device.id, Direction.OUT, VIEWED)) == 2

        results = SearchHandler(neo4j_client, search_window_millis=False).search(
            user_guid=user.id, open_time=1000, domain="example.com", include_successors=True,
        )

        assert [page["id"] for page in results] == [first, second]


class TestNeo4jQueries:
    """Test the Cypher the client sends, against a stub driver."""

    def _client(self, rows):
        from parsley.graph.neo4j_client import Neo4jClient

        client = Neo4jClient.__new__(Neo4jClient)
        client.driver = MagicMock()
        session = client.driver.session.return_value.__enter__.return_value
        session.run.return_value = rows
        return client, session

    @pytest.mark.parametrize("key", ["domain", "type"])
    def test_property_lookup_is_a_literal_match(self, key):
        client, session = self._client([{"v": {"id": "d1", key: "example.com"}}])

        (node,) = client.get_vertices(key, "example.com")

        query = session.run.call_args.args[0]
        assert "MATCH (v:Vertex {`%s`: $value})" % key in query
        assert "v[" not in query
        assert session.run.call_args.kwargs == {"value": "example.com"}
        assert node.id == "d1"
        assert node.properties[key] == "example.com"

    def test_property_name_is_escaped(self):
        client, session = self._client([])

        assert client.get_vertices("odd`key", 1) == []
        assert "{`odd``key`: $value}" in session.run.call_args.args[0]
