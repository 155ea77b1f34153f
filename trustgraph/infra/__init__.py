"""
Infrastructure package - unified entry points for core services.

This package provides standardized, centralized access to:
- Database (db, get_db)
- Write authorization (require_write_key)
- Logging (configure_logging, init_logging, get_logger)
"""

from trustgraph.infra.db import db, get_db
from trustgraph.infra.auth import require_write_key
from trustgraph.infra.log import configure_logging, init_logging, get_logger

__all__ = [
    "db",
    "get_db",
    "require_write_key",
    "configure_logging",
    "init_logging",
    "get_logger",
]
