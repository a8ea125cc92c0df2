from typing import Dict, Any

from ..exceptions import InvalidInput, InvalidReference, NotFound, MalformedAttributes
from ..types import (
    PageView, VertexKind, VIEWED, UNDER, CHILD_OF, PARENT_OF, SUCCESSOR_TO, PREDECESSOR_TO,
)
from ..utils.graph_helpers import create_edge
from ..utils.logger import app_logger
from .domain import DomainResolver, extract_domain


class PageViewHandler:
    """Creates page-view vertices and merges attributes onto existing ones."""

    def __init__(self, graph, domain_resolver: DomainResolver = None):
        self.logger = app_logger.bind(component="page_view_handler")
        self.graph = graph
        self.domain_resolver = domain_resolver or DomainResolver(graph)

    def create_page_view(self, attributes: Dict[str, Any]) -> Dict[str, str]:
        """
        Create a page view seen by the device named in ``deviceGuid``.

        Optional ``predecessor`` and ``parent`` link the new vertex into its
        sequence and parent chains; a missing target is reported in the
        result instead of failing the request. ``pageUrl`` links the page
        view to its domain.
        """
        self.logger.debug(f"New page view request: {attributes}")

        # Check that the device is valid before doing anything else
        if not isinstance(attributes, dict):
            raise MalformedAttributes("Page view attributes must be an object")
        if attributes.get("deviceGuid") in (None, ""):
            raise InvalidInput("Missing deviceGuid")
        device = self.graph.get_vertex(attributes["deviceGuid"])
        if device is None or device.kind != VertexKind.DEVICE:
            raise InvalidReference("Invalid deviceGuid, please recreate")

        page_view = PageView.from_attributes(attributes)
        domain = None
        if "pageUrl" in attributes:
            if not isinstance(attributes["pageUrl"], str):
                raise InvalidInput("pageUrl must be a string")
            domain = extract_domain(attributes["pageUrl"])

        # Create the new vertex
        vertex = self.graph.add_vertex()
        page_view.merge_into_vertex(self.graph, vertex.id)
        self.logger.info(f"Created page view {vertex.id} for device {device.id}")

        result = {"id": vertex.id}

        # Link to the predecessor or parent if needed
        if "predecessor" in attributes:
            linked = create_edge(self.graph, vertex, str(attributes["predecessor"]),
                                 SUCCESSOR_TO, PREDECESSOR_TO, VertexKind.PAGE_VIEW)
            result["predecessor"] = ("predecessor created successfully" if linked
                                     else "predecessor could not be created")
        if "parent" in attributes:
            linked = create_edge(self.graph, vertex, str(attributes["parent"]),
                                 CHILD_OF, PARENT_OF, VertexKind.PAGE_VIEW)
            result["parent"] = ("parent created successfully" if linked
                                else "parent could not be created")

        self.graph.add_edge(VIEWED, device.id, vertex.id)

        if domain is not None:
            domain_vertex = self.domain_resolver.resolve(domain)
            self.graph.add_edge(UNDER, vertex.id, domain_vertex.id)

        return result

    def update_page_view(self, vertex_id: str, attributes: Dict[str, Any]) -> Dict[str, str]:
        """Merge ``attributes`` onto an existing page view."""
        vertex = self.graph.get_vertex(vertex_id)
        if vertex is None:
            raise NotFound(f"Invalid vertex {vertex_id}, can not update")
        if vertex.kind != VertexKind.PAGE_VIEW:
            raise InvalidReference(f"Vertex {vertex_id} is a {vertex.kind.value}, not a page view")

        page_view = PageView.from_attributes(attributes)
        if page_view.merge_into_vertex(self.graph, vertex.id) is None:
            raise NotFound(f"Vertex {vertex_id} disappeared during update")
        self.logger.info(f"Updated page view {vertex.id} with {len(page_view.properties)} attributes")

        return {"message": "vertex updated"}
