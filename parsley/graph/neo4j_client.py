from typing import List, Dict, Any, Optional
import uuid
from neo4j import GraphDatabase

from ..config import settings
from ..exceptions import NotFound
from ..types import GraphNode, GraphEdge, Direction, EDGE_LABELS
from ..utils.logger import app_logger


class Neo4jClient:
    """Neo4j client for graph database operations."""

    def __init__(self, uri: Optional[str] = None, username: Optional[str] = None,
                 password: Optional[str] = None):
        self.logger = app_logger.bind(component="neo4j_client")
        self.uri = uri or settings.neo4j_uri
        self.username = username or settings.neo4j_username
        self.password = password or settings.neo4j_password
        self.driver = None
        self._connect()
        self._ensure_constraints()

    def _connect(self):
        """Connect to Neo4j server."""
        try:
            self.driver = GraphDatabase.driver(self.uri, auth=(self.username, self.password))
            self.driver.verify_connectivity()
            self.logger.info(f"Connected to Neo4j at {self.uri}")
        except Exception as e:
            self.logger.error(f"Failed to connect to Neo4j: {e}")
            raise

    def _ensure_constraints(self):
        """Ensure necessary constraints and indexes exist."""
        constraints = [
            "CREATE CONSTRAINT vertex_id_unique IF NOT EXISTS FOR (v:Vertex) REQUIRE v.id IS UNIQUE",
            "CREATE INDEX vertex_type_index IF NOT EXISTS FOR (v:Vertex) ON (v.type)",
            "CREATE INDEX vertex_domain_index IF NOT EXISTS FOR (v:Vertex) ON (v.domain)",
            "CREATE INDEX vertex_open_time_index IF NOT EXISTS FOR (v:Vertex) ON (v.pageOpenTime)",
        ]

        with self.driver.session() as session:
            for constraint in constraints:
                try:
                    session.run(constraint)
                    self.logger.debug(f"Created constraint: {constraint}")
                except Exception as e:
                    self.logger.warning(f"Failed to create constraint {constraint}: {e}")

    def close(self):
        """Close connection to Neo4j."""
        if self.driver:
            self.driver.close()
            self.logger.info("Disconnected from Neo4j")

    @staticmethod
    def _to_node(node_data) -> GraphNode:
        properties = dict(node_data)
        vertex_id = properties.pop("id")
        return GraphNode(id=vertex_id, type=properties.get("type"), properties=properties)

    @staticmethod
    def _check_label(label: str):
        # Labels are interpolated into Cypher, so only known ones pass
        if label not in EDGE_LABELS:
            raise ValueError(f"Unknown edge label: {label}")

    def get_vertex(self, vertex_id: Any) -> Optional[GraphNode]:
        """Get a vertex by id, or None if it does not exist."""
        if vertex_id is None:
            return None
        query = "MATCH (v:Vertex {id: $id}) RETURN v"

        with self.driver.session() as session:
            record = session.run(query, id=str(vertex_id)).single()
            return self._to_node(record["v"]) if record else None

    def add_vertex(self, properties: Optional[Dict[str, Any]] = None) -> GraphNode:
        """Create a vertex with a store-assigned id."""
        query = """
        CREATE (v:Vertex)
        SET v = $properties, v.id = $id
        RETURN v
        """

        with self.driver.session() as session:
            record = session.run(query, properties=dict(properties or {}), id=uuid.uuid4().hex).single()
            if record:
                return self._to_node(record["v"])

        raise Exception("Failed to create vertex")

    def set_properties(self, vertex_id: str, properties: Dict[str, Any]) -> Optional[GraphNode]:
        """Merge properties onto a vertex. Returns None if the vertex does not exist."""
        query = """
        MATCH (v:Vertex {id: $id})
        SET v += $properties
        RETURN v
        """

        with self.driver.session() as session:
            record = session.run(query, id=str(vertex_id), properties=properties).single()
            return self._to_node(record["v"]) if record else None

    def add_edge(self, label: str, source_id: str, target_id: str) -> GraphEdge:
        """Create a directed edge. Creating an existing edge again is a no-op."""
        self._check_label(label)
        query = """
        MATCH (source:Vertex {id: $source_id}), (target:Vertex {id: $target_id})
        MERGE (source)-[r:`%s`]->(target)
        RETURN type(r) AS label
        """ % label

        with self.driver.session() as session:
            record = session.run(query, source_id=source_id, target_id=target_id).single()
            if record:
                return GraphEdge(source_id=source_id, target_id=target_id, relationship_type=record["label"])

        raise NotFound(f"Failed to create edge: {source_id} -[{label}]-> {target_id}")

    def get_vertices(self, key: str, value: Any) -> List[GraphNode]:
        """Find vertices whose property ``key`` equals ``value``."""
        # A literal property in the pattern lets the planner use the type and domain indexes
        query = "MATCH (v:Vertex {`%s`: $value}) RETURN v" % key.replace("`", "``")

        with self.driver.session() as session:
            result = session.run(query, value=value)
            return [self._to_node(record["v"]) for record in result]

    def get_neighbors(self, vertex_id: str, direction: Direction, label: str) -> List[GraphNode]:
        """Vertices adjacent to ``vertex_id`` over edges with the given label."""
        self._check_label(label)
        if direction == Direction.OUT:
            pattern = "(v:Vertex {id: $id})-[:`%s`]->(n:Vertex)" % label
        else:
            pattern = "(v:Vertex {id: $id})<-[:`%s`]-(n:Vertex)" % label
        query = "MATCH %s RETURN n" % pattern

        with self.driver.session() as session:
            result = session.run(query, id=vertex_id)
            return [self._to_node(record["n"]) for record in result]

    def find_viewed_in_window(self, user_id: str, start: int, end: int,
                              domain: Optional[str] = None) -> List[GraphNode]:
        """Page views seen by any device the user owns, opened within [start, end]."""
        query = """
        MATCH (u:Vertex {id: $user_id})-[:owns]->(:Vertex)-[:viewed]->(p:Vertex)
        WHERE p.pageOpenTime >= $start AND p.pageOpenTime <= $end
        """
        if domain is not None:
            query += """
        AND EXISTS { MATCH (p)-[:under]->(d:Vertex) WHERE d.domain = $domain }
        """
        query += "RETURN DISTINCT p"

        with self.driver.session() as session:
            result = session.run(query, user_id=user_id, start=start, end=end, domain=domain)
            return [self._to_node(record["p"]) for record in result]

    def clear_database(self):
        """Clear all data from the database."""
        query = "MATCH (n) DETACH DELETE n"

        with self.driver.session() as session:
            session.run(query)
            self.logger.info("Cleared all data from Neo4j database")

    def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        stats = {}

        # Count vertices by kind; page views carry no type
        vertex_counts = """
        MATCH (v:Vertex)
        RETURN coalesce(v.type, 'pageView') as kind, count(v) as count
        """

        with self.driver.session() as session:
            result = session.run(vertex_counts)
            stats["vertices"] = {record["kind"]: record["count"] for record in result}

        # Count edges by label
        edge_counts = """
        MATCH ()-[r]->()
        RETURN type(r) as type, count(r) as count
        """

        with self.driver.session() as session:
            result = session.run(edge_counts)
            stats["edges"] = {record["type"]: record["count"] for record in result}

        return stats
