"""
Parsley: browsing history stored as a graph of page views.
"""

__version__ = "1.0.0"
