import pytest
import os
import sys
from pathlib import Path
from typing import Dict, Any, Callable, Generator

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from parsley.config import settings
from parsley.graph.json_graph_client import JsonGraphClient
from parsley.handlers import DomainResolver, PageViewHandler, SearchHandler
from parsley.types import GraphNode, OWNS


@pytest.fixture
def graph() -> Generator[JsonGraphClient, None, None]:
    """In-memory graph client."""
    client = JsonGraphClient()
    yield client
    client.clear_database()


@pytest.fixture
def user(graph: JsonGraphClient) -> GraphNode:
    """A user vertex; users are created outside the request handlers."""
    return graph.add_vertex({"type": "user", "name": "test-user"})


@pytest.fixture
def device(graph: JsonGraphClient, user: GraphNode) -> GraphNode:
    """A device vertex owned by ``user``."""
    device = graph.add_vertex({"type": "device", "name": "laptop"})
    graph.add_edge(OWNS, user.id, device.id)
    return device


@pytest.fixture
def domain_resolver(graph: JsonGraphClient) -> DomainResolver:
    return DomainResolver(graph)


@pytest.fixture
def page_view_handler(graph: JsonGraphClient, domain_resolver: DomainResolver) -> PageViewHandler:
    return PageViewHandler(graph, domain_resolver)


@pytest.fixture
def search_handler(graph: JsonGraphClient) -> SearchHandler:
    return SearchHandler(graph, search_window_millis=False)


@pytest.fixture
def ingest(page_view_handler: PageViewHandler, device: GraphNode) -> Callable[..., str]:
    """Create a page view on ``device`` and return its id."""
    def _ingest(**attributes: Any) -> str:
        attributes.setdefault("deviceGuid", device.id)
        return page_view_handler.create_page_view(attributes)["id"]
    return _ingest


@pytest.fixture
def sample_attributes(device: GraphNode) -> Dict[str, Any]:
    """Sample page view payload."""
    return {
        "deviceGuid": device.id,
        "pageOpenTime": 1382025600000,
        "pageUrl": "http://www.example.com/articles/1",
        "title": "An article",
        "tabId": 7,
    }


@pytest.fixture(scope="session")
def neo4j_settings():
    """Neo4j connection settings from the environment."""
    return {
        "uri": os.getenv("NEO4J_URI", settings.neo4j_uri),
        "username": os.getenv("NEO4J_USERNAME", settings.neo4j_username),
        "password": os.getenv("NEO4J_PASSWORD", "password"),
    }
