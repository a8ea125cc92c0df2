from typing import List, Dict, Any, Optional

from ..config import settings
from ..exceptions import InvalidInput, NotFound
from ..types import (
    GraphNode, PageView, Direction, CHILD_OF, SUCCESSOR_TO, PREDECESSOR_TO, PARENT_OF,
    parse_millis,
)
from ..utils.graph_helpers import time_window
from ..utils.logger import app_logger
from .domain import normalize_domain


class SearchHandler:
    """Time-windowed search over a user's page views."""

    def __init__(self, graph, search_window_millis: Optional[bool] = None):
        self.logger = app_logger.bind(component="search_handler")
        self.graph = graph
        if search_window_millis is None:
            search_window_millis = settings.search_window_millis
        self.search_window_millis = search_window_millis

    def search(
        self,
        user_guid: str,
        open_time: Any,
        time_range: int = None,
        time_range_units: str = None,
        domain: Optional[str] = None,
        include_successors: bool = False,
        include_children: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Page views the user's devices opened within ``time_range`` of ``open_time``.

        Each direct match is followed by its successor chain and/or child
        chain when requested. Every page view appears at most once, in
        discovery order.
        """
        if open_time in (None, ""):
            raise InvalidInput("You should specify an openTime")
        if not user_guid:
            raise InvalidInput("You should specify a userGuid")
        try:
            open_time = parse_millis(open_time)
        except ValueError:
            raise InvalidInput(f"openTime must be epoch milliseconds, got {open_time!r}")

        user = self.graph.get_vertex(user_guid)
        if user is None:
            raise NotFound("Invalid userGuid")

        if time_range is None:
            time_range = settings.default_time_range
        if isinstance(time_range, bool):
            raise InvalidInput(f"timeRange must be an integer, got {time_range!r}")
        try:
            time_range = int(time_range)
        except (TypeError, ValueError):
            raise InvalidInput(f"timeRange must be an integer, got {time_range!r}")
        if time_range_units is None:
            time_range_units = settings.default_time_range_units
        start, end = time_window(open_time, time_range, time_range_units, self.search_window_millis)
        if domain:
            domain = normalize_domain(domain)
        else:
            domain = None

        matches = self.graph.find_viewed_in_window(user.id, start, end, domain)
        self.logger.info(
            f"Search for user {user.id} in [{start}, {end}] domain={domain}: {len(matches)} direct matches"
        )

        pages: List[Dict[str, Any]] = []
        visited = set()
        for vertex in matches:
            self._expand(vertex, pages, visited, include_successors, include_children)

        return pages

    def _expand(self, root: GraphNode, pages: List[Dict[str, Any]], visited: set,
                successors: bool, children: bool):
        """Depth-first walk from ``root``, successors before children."""
        stack = [root]
        while stack:
            vertex = stack.pop()
            if vertex.id in visited:
                continue
            visited.add(vertex.id)

            page_view = PageView.from_vertex(vertex)
            for parent in self.graph.get_neighbors(vertex.id, Direction.OUT, CHILD_OF):
                page_view.set_property("parentId", parent.id)
            for predecessor in self.graph.get_neighbors(vertex.id, Direction.OUT, SUCCESSOR_TO):
                page_view.set_property("predecessorId", predecessor.id)
            pages.append(page_view.to_dict())

            following = []
            if successors:
                following.extend(self.graph.get_neighbors(vertex.id, Direction.OUT, PREDECESSOR_TO))
            if children:
                following.extend(self.graph.get_neighbors(vertex.id, Direction.OUT, PARENT_OF))
            # Reversed so the first neighbor is popped first
            stack.extend(reversed([v for v in following if v.id not in visited]))
