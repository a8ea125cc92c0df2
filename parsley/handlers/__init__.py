"""
Request handlers for page-view ingest, update and search.
"""

from .domain import DomainResolver, extract_domain, normalize_domain
from .page_view import PageViewHandler
from .search import SearchHandler

__all__ = [
    'DomainResolver',
    'PageViewHandler',
    'SearchHandler',
    'extract_domain',
    'normalize_domain',
]
