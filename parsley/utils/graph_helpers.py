"""
Helpers shared by the request handlers.
"""
from typing import Tuple

from ..types import GraphNode, VertexKind
from .logger import app_logger


logger = app_logger.bind(component="graph_helpers")

# Seconds per recognized time-range unit
TIME_RANGE_UNITS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 60 * 60,
}


def create_edge(graph, vertex: GraphNode, other_id: str, label: str, reverse_label: str = None,
                expected_kind: VertexKind = None) -> bool:
    """
    Link ``vertex`` to the vertex named by ``other_id``.

    Creates ``vertex -[label]-> other`` and, when ``reverse_label`` is given,
    ``other -[reverse_label]-> vertex``. Returns False without writing
    anything if ``other_id`` does not resolve, or resolves to a vertex that
    is not of ``expected_kind``.
    """
    other = graph.get_vertex(other_id)
    if other is None:
        logger.warning(f"Cannot link {vertex.id} -[{label}]-> {other_id}: vertex not found")
        return False
    if expected_kind is not None and other.kind != expected_kind:
        logger.warning(f"Cannot link {vertex.id} -[{label}]-> {other_id}: {other.kind.value}, not {expected_kind.value}")
        return False

    graph.add_edge(label, vertex.id, other.id)
    if reverse_label:
        graph.add_edge(reverse_label, other.id, vertex.id)
    logger.debug(f"Linked {vertex.id} -[{label}]-> {other.id}")
    return True


def adjust_time_range(time_range: int, units: str) -> int:
    """Convert ``time_range`` to seconds. Unknown units pass the value through."""
    factor = TIME_RANGE_UNITS.get(units)
    if factor is None:
        logger.warning(f"Unknown time range unit {units!r}, using {time_range} unconverted")
        return time_range
    return time_range * factor


def time_window(open_time: int, time_range: int, units: str, in_millis: bool = False) -> Tuple[int, int]:
    """Inclusive [start, end] window around ``open_time``."""
    delta = adjust_time_range(time_range, units)
    if in_millis:
        delta *= 1000
    return open_time - delta, open_time + delta
