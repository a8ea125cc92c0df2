"""
Graph storage backends for the page-view graph.
"""

from ..config import settings
from .json_graph_client import JsonGraphClient


def create_graph_client(backend: str = None):
    """Create the graph client selected by ``backend`` or ``settings.graph_backend``."""
    backend = (backend or settings.graph_backend).lower()
    if backend == "json":
        return JsonGraphClient(settings.graph_storage_path)
    if backend == "neo4j":
        # Imported lazily so the JSON backend runs without a Neo4j server
        from .neo4j_client import Neo4jClient
        return Neo4jClient()
    raise ValueError(f"Unknown graph backend: {backend}")


__all__ = [
    'JsonGraphClient',
    'create_graph_client',
]
