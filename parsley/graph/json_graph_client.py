from typing import List, Dict, Any, Optional, Tuple, Set
from collections import defaultdict
import datetime
import json
import threading
import uuid
from pathlib import Path

from ..exceptions import NotFound
from ..types import (
    GraphNode, GraphEdge, Direction, EDGE_LABELS, PAGE_OPEN_TIME,
    OWNS, VIEWED, UNDER, parse_millis,
)
from ..utils.logger import app_logger


# Properties with an in-memory value index
INDEXED_KEYS = ("type", "domain")


class JsonGraphClient:
    """In-process graph storage client with optional JSON file persistence."""

    def __init__(self, storage_path: Optional[str] = None):
        self.logger = app_logger.bind(component="json_graph_client")
        self.storage_path = Path(storage_path) if storage_path else None
        if self.storage_path:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)

        # Every public operation holds this lock, so single writes are atomic
        self._lock = threading.RLock()
        self.data = self._initialize_data()

        # Load existing data if file exists
        self._load_data()

    def _initialize_data(self) -> Dict[str, Any]:
        """Initialize empty data structure."""
        return {
            "vertices": {},
            "edges": [],
            "metadata": {
                "version": "1.0",
                "created_at": None,
                "updated_at": None
            }
        }

    def _load_data(self):
        """Load data from JSON file."""
        if self.storage_path and self.storage_path.exists():
            try:
                with open(self.storage_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if self._is_graph_data(data):
                    if not isinstance(data.get("metadata"), dict):
                        data["metadata"] = self._initialize_data()["metadata"]
                    self.data = data
                    self.logger.info(f"Loaded graph data from {self.storage_path}")
                else:
                    self.logger.error(f"Graph data in {self.storage_path} is not a graph, starting empty")
                    self.data = self._initialize_data()
            except (OSError, ValueError) as e:
                self.logger.error(f"Error loading graph data: {e}")
                self.data = self._initialize_data()
        self._rebuild_indexes()

    @staticmethod
    def _is_graph_data(data: Any) -> bool:
        """Check the top-level shape written by ``_save_data``."""
        if not isinstance(data, dict):
            return False
        vertices, edges = data.get("vertices"), data.get("edges")
        if not isinstance(vertices, dict) or not isinstance(edges, list):
            return False
        return (all(isinstance(v, dict) and v.get("id") == vertex_id and isinstance(v.get("properties"), dict)
                    for vertex_id, v in vertices.items())
                and all(isinstance(e, dict) and {"source_id", "target_id", "relationship_type"} <= e.keys()
                        for e in edges))

    def _rebuild_indexes(self):
        """Rebuild property indexes and adjacency lists from ``self.data``."""
        self._index: Dict[str, Dict[Any, List[str]]] = {key: defaultdict(list) for key in INDEXED_KEYS}
        self._out: Dict[str, Dict[str, List[str]]] = defaultdict(lambda: defaultdict(list))
        self._in: Dict[str, Dict[str, List[str]]] = defaultdict(lambda: defaultdict(list))
        self._edge_keys: Set[Tuple[str, str, str]] = set()

        for vertex_id, vertex_data in self.data["vertices"].items():
            self._index_vertex(vertex_id, {}, vertex_data["properties"])
        for edge in self.data["edges"]:
            self._index_edge(edge["source_id"], edge["target_id"], edge["relationship_type"])

    def _index_vertex(self, vertex_id: str, old: Dict[str, Any], new: Dict[str, Any]):
        for key in INDEXED_KEYS:
            if key not in new or old.get(key) == new[key]:
                continue
            # Unhashable values (lists) stay out of the index; lookups scan for them
            try:
                if key in old and vertex_id in self._index[key].get(old[key], []):
                    self._index[key][old[key]].remove(vertex_id)
            except TypeError:
                pass
            try:
                self._index[key][new[key]].append(vertex_id)
            except TypeError:
                pass

    def _index_edge(self, source_id: str, target_id: str, label: str):
        self._out[source_id][label].append(target_id)
        self._in[target_id][label].append(source_id)
        self._edge_keys.add((source_id, target_id, label))

    def _save_data(self):
        """Save data to JSON file."""
        if not self.storage_path:
            return
        try:
            self.data["metadata"]["updated_at"] = datetime.datetime.now().isoformat()
            if not self.data["metadata"]["created_at"]:
                self.data["metadata"]["created_at"] = self.data["metadata"]["updated_at"]

            with open(self.storage_path, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
            self.logger.debug(f"Saved graph data to {self.storage_path}")
        except OSError as e:
            self.logger.error(f"Error saving graph data: {e}")
            raise

    def _to_node(self, vertex_id: str) -> GraphNode:
        properties = dict(self.data["vertices"][vertex_id]["properties"])
        return GraphNode(id=vertex_id, type=properties.get("type"), properties=properties)

    def get_vertex(self, vertex_id: Any) -> Optional[GraphNode]:
        """Get a vertex by id, or None if it does not exist."""
        if vertex_id is None:
            return None
        with self._lock:
            vertex_id = str(vertex_id)
            if vertex_id not in self.data["vertices"]:
                return None
            return self._to_node(vertex_id)

    def add_vertex(self, properties: Optional[Dict[str, Any]] = None) -> GraphNode:
        """Create a vertex with a store-assigned id."""
        with self._lock:
            vertex_id = uuid.uuid4().hex
            properties = dict(properties or {})
            self.data["vertices"][vertex_id] = {"id": vertex_id, "properties": properties}
            self._index_vertex(vertex_id, {}, properties)
            self._save_data()
            return self._to_node(vertex_id)

    def set_properties(self, vertex_id: str, properties: Dict[str, Any]) -> Optional[GraphNode]:
        """Merge properties onto a vertex. Returns None if the vertex does not exist."""
        with self._lock:
            vertex_data = self.data["vertices"].get(str(vertex_id))
            if vertex_data is None:
                return None
            old = dict(vertex_data["properties"])
            vertex_data["properties"].update(properties)
            self._index_vertex(vertex_data["id"], old, vertex_data["properties"])
            self._save_data()
            return self._to_node(vertex_data["id"])

    def add_edge(self, label: str, source_id: str, target_id: str) -> GraphEdge:
        """Create a directed edge. Creating an existing edge again is a no-op."""
        if label not in EDGE_LABELS:
            raise ValueError(f"Unknown edge label: {label}")

        with self._lock:
            for vertex_id in (source_id, target_id):
                if vertex_id not in self.data["vertices"]:
                    raise NotFound(f"Vertex not found: {vertex_id}")

            edge_data = {
                "source_id": source_id,
                "target_id": target_id,
                "relationship_type": label
            }
            if (source_id, target_id, label) not in self._edge_keys:
                self.data["edges"].append(edge_data)
                self._index_edge(source_id, target_id, label)
                self._save_data()

            return GraphEdge(**edge_data)

    def get_vertices(self, key: str, value: Any) -> List[GraphNode]:
        """Find vertices whose property ``key`` equals ``value``."""
        with self._lock:
            if key in INDEXED_KEYS:
                try:
                    return [self._to_node(vertex_id) for vertex_id in self._index[key].get(value, [])]
                except TypeError:
                    pass
            return [
                self._to_node(vertex_id)
                for vertex_id, vertex_data in self.data["vertices"].items()
                if vertex_data["properties"].get(key) == value
            ]

    def get_neighbors(self, vertex_id: str, direction: Direction, label: str) -> List[GraphNode]:
        """Vertices adjacent to ``vertex_id`` over edges with the given label."""
        with self._lock:
            adjacency = self._out if direction == Direction.OUT else self._in
            if vertex_id not in adjacency:
                return []
            return [self._to_node(neighbor_id) for neighbor_id in adjacency[vertex_id].get(label, [])]

    def find_viewed_in_window(self, user_id: str, start: int, end: int,
                              domain: Optional[str] = None) -> List[GraphNode]:
        """Page views seen by any device the user owns, opened within [start, end]."""
        with self._lock:
            results = []
            seen = set()
            for device in self.get_neighbors(user_id, Direction.OUT, OWNS):
                for page in self.get_neighbors(device.id, Direction.OUT, VIEWED):
                    if page.id in seen:
                        continue
                    try:
                        opened = parse_millis(page.properties.get(PAGE_OPEN_TIME))
                    except ValueError:
                        continue
                    if not start <= opened <= end:
                        continue
                    if domain is not None and not any(
                        node.properties.get("domain") == domain
                        for node in self.get_neighbors(page.id, Direction.OUT, UNDER)
                    ):
                        continue
                    seen.add(page.id)
                    results.append(page)
            return results

    def clear_database(self):
        """Clear all data from the database."""
        with self._lock:
            self.data = self._initialize_data()
            self._rebuild_indexes()
            self._save_data()
            self.logger.info("Cleared all data from JSON graph database")

    def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        with self._lock:
            stats = {}

            # Count vertices by kind
            vertex_counts = {}
            for vertex_id in self.data["vertices"]:
                kind = self._to_node(vertex_id).kind.value
                vertex_counts[kind] = vertex_counts.get(kind, 0) + 1
            stats["vertices"] = vertex_counts

            # Count edges by label
            edge_counts = {}
            for edge in self.data["edges"]:
                label = edge["relationship_type"]
                edge_counts[label] = edge_counts.get(label, 0) + 1
            stats["edges"] = edge_counts

            return stats

    def get_all_vertices(self) -> List[GraphNode]:
        """Get all vertices in the graph."""
        with self._lock:
            return [self._to_node(vertex_id) for vertex_id in self.data["vertices"]]

    def get_all_edges(self) -> List[GraphEdge]:
        """Get all edges in the graph."""
        with self._lock:
            return [GraphEdge(**edge_data) for edge_data in self.data["edges"]]

    def close(self):
        """Nothing to release; present for parity with the Neo4j client."""
        self.logger.debug("Closed JSON graph client")
