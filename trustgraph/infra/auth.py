"""
Unified authorization infrastructure module.

Write routes (event ingest, recompute) import their guard from here.
"""

from trustgraph.middleware.write_key import require_write_key

__all__ = ["require_write_key"]
