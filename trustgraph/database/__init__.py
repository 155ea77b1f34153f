# -*- coding: utf-8 -*-
"""
Database handle for the Flask application.

The SQLAlchemy() instance is bound to the app in create_app(); services never
import it directly and receive a session instead (see get_db).
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def get_db():
    """Yield the request-scoped session."""
    yield db.session
