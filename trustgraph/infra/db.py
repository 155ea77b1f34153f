"""
Unified database infrastructure module.

All models should import the SQLAlchemy instance from here.
"""

from trustgraph.database import db, get_db

__all__ = ["db", "get_db"]
