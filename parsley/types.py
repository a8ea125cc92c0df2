from typing import Dict, Any, Optional, Mapping
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import InvalidInput, MalformedAttributes


# Edge labels
OWNS = "owns"
VIEWED = "viewed"
UNDER = "under"
CHILD_OF = "childOf"
PARENT_OF = "parentOf"
SUCCESSOR_TO = "successorTo"
PREDECESSOR_TO = "predecessorTo"

EDGE_LABELS = frozenset([OWNS, VIEWED, UNDER, CHILD_OF, PARENT_OF, SUCCESSOR_TO, PREDECESSOR_TO])

# Properties the merge layer never copies onto a vertex
RESERVED_KEYS = frozenset(["id", "type"])

PAGE_OPEN_TIME = "pageOpenTime"


class VertexKind(Enum):
    """Vertex kind, derived from the ``type`` property."""
    USER = "user"
    DEVICE = "device"
    DOMAIN = "domain"
    PAGE_VIEW = "pageView"

    @classmethod
    def of(cls, node: Optional["GraphNode"]) -> Optional["VertexKind"]:
        """Kind of a vertex; page views carry no type tag."""
        if node is None:
            return None
        for kind in (cls.USER, cls.DEVICE, cls.DOMAIN):
            if node.type == kind.value:
                return kind
        return cls.PAGE_VIEW


class Direction(Enum):
    """Edge direction relative to a vertex."""
    OUT = "out"
    IN = "in"


@dataclass
class GraphNode:
    """Represents a vertex in the page-view graph."""
    id: str
    type: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> VertexKind:
        return VertexKind.of(self)


@dataclass
class GraphEdge:
    """Represents a directed, labeled edge between two vertices."""
    source_id: str
    target_id: str
    relationship_type: str


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def parse_millis(value: Any) -> int:
    """Parse an epoch-millisecond timestamp given as a number or numeric string."""
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"Not a timestamp: {value!r}")


class PageView:
    """
    Flat set of page-view attributes.

    Bridges request payloads and vertex properties: a payload is validated
    with ``from_attributes`` and merged onto a vertex, and a vertex is read
    back into a serializable mapping with ``from_vertex``.
    """

    def __init__(self, properties: Optional[Dict[str, Any]] = None):
        self.properties: Dict[str, Any] = dict(properties or {})

    @classmethod
    def from_attributes(cls, attributes: Any) -> "PageView":
        """Validate a request payload."""
        if not isinstance(attributes, Mapping):
            raise MalformedAttributes(f"Attributes must be an object, got {type(attributes).__name__}")

        properties = {}
        for key, value in attributes.items():
            if not isinstance(key, str):
                raise MalformedAttributes(f"Attribute names must be strings, got {key!r}")
            if key in RESERVED_KEYS:
                continue
            if isinstance(value, list):
                if not all(_is_scalar(item) for item in value):
                    raise MalformedAttributes(f"Attribute {key} must be a flat list of scalars")
            elif not _is_scalar(value):
                raise MalformedAttributes(f"Attribute {key} has unsupported value {value!r}")
            properties[key] = value

        if PAGE_OPEN_TIME in properties:
            try:
                properties[PAGE_OPEN_TIME] = parse_millis(properties[PAGE_OPEN_TIME])
            except ValueError:
                raise InvalidInput(f"{PAGE_OPEN_TIME} must be epoch milliseconds")

        return cls(properties)

    @classmethod
    def from_vertex(cls, node: GraphNode) -> "PageView":
        page_view = cls(node.properties)
        page_view.properties["id"] = node.id
        return page_view

    def merge_into_vertex(self, graph, vertex_id: str) -> Optional[GraphNode]:
        """Add or overwrite each attribute on the vertex; other keys are untouched."""
        return graph.set_properties(vertex_id, self.properties)

    def set_property(self, key: str, value: Any):
        self.properties[key] = value

    def get_property(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return dict(self.properties)
