from typing import Dict, Optional
from urllib.parse import urlsplit
import threading

from ..types import GraphNode, VertexKind
from ..utils.logger import app_logger


# Domain recorded for URLs whose host cannot be determined
SPECIAL_DOMAIN = "special"

logger = app_logger.bind(component="domain_resolver")


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def extract_domain(page_url: str) -> str:
    """Host of ``page_url`` without a leading ``www.``, or ``"special"``."""
    try:
        host = urlsplit(page_url).hostname
    except ValueError as e:
        logger.warning(f"Could not parse page URL {page_url!r}: {e}")
        return SPECIAL_DOMAIN
    if not host:
        logger.warning(f"Page URL {page_url!r} has no host")
        return SPECIAL_DOMAIN
    return _strip_www(host)


def normalize_domain(domain: str) -> str:
    """Normalize a bare host the same way ``extract_domain`` normalizes URL hosts."""
    return _strip_www(domain.strip().lower())


class DomainResolver:
    """Find-or-create for Domain vertices, one vertex per normalized domain."""

    def __init__(self, graph):
        self.graph = graph
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, domain: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(domain)
            if lock is None:
                lock = self._locks[domain] = threading.Lock()
            return lock

    def find(self, domain: str) -> Optional[GraphNode]:
        for vertex in self.graph.get_vertices("domain", domain):
            if vertex.kind == VertexKind.DOMAIN:
                return vertex
        return None

    def resolve(self, domain: str) -> GraphNode:
        """Return the Domain vertex for ``domain``, creating it on first reference."""
        with self._lock_for(domain):
            vertex = self.find(domain)
            if vertex is not None:
                return vertex

            vertex = self.graph.add_vertex({"type": VertexKind.DOMAIN.value, "domain": domain})
            logger.info(f"Created domain vertex {vertex.id} for {domain}")
            return vertex
