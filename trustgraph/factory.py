# -*- coding: utf-8 -*-
import os
from flask import Flask
from flask_cors import CORS
from trustgraph.config import Config
from trustgraph.database import db

# Observability imports
from trustgraph.services.metrics import init_metrics
from trustgraph.services.structured_logging import init_logging


def _normalize_db_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg://" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _migrate_db(app):
    """Run Alembic migrations to head using the app's DB URL."""
    from pathlib import Path
    from alembic import command
    from alembic.config import Config as AlembicConfig

    base_dir = Path(__file__).resolve().parent.parent
    cfg = AlembicConfig()  # in-memory config, avoid alembic.ini dependency
    cfg.set_main_option("script_location", str(base_dir / "migrations"))
    cfg.set_main_option("sqlalchemy.url", app.config["SQLALCHEMY_DATABASE_URI"])

    command.upgrade(cfg, "head")
    app.logger.info("Database migrations applied successfully")


def _seed_badge_definitions():
    """Insert the built-in badge catalogue (safe if the table is missing)."""
    from trustgraph.models.badges import BadgeDefinition
    from flask import current_app
    import sqlalchemy as sa

    if not sa.inspect(db.engine).has_table("badge_definitions"):
        current_app.logger.warning(
            "Skipping badge seeding: badge_definitions table missing "
            "(migrate will create it)."
        )
        return

    added = BadgeDefinition.seed_defaults(db.session)
    if added:
        current_app.logger.info(f"Seeded {added} badge definitions")


def create_app() -> Flask:
    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # --- Core config ---
    app.config.from_object(Config())

    # --- DB config ---
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        db_path = os.path.join(
            os.path.dirname(__file__),
            "..",
            "instance",
            "trustgraph.db")
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        db_url = f"sqlite:///{db_path}"
    else:
        db_url = _normalize_db_url(db_url)

    app.config["SQLALCHEMY_DATABASE_URI"] = db_url
    db.init_app(app)

    # --- CORS ---
    # Public read surfaces only
    CORS(app, resources={
        r"/leaderboard": {"origins": "*", "methods": ["GET", "OPTIONS"]},
        r"/agent/*": {"origins": "*", "methods": ["GET", "OPTIONS"]},
        r"/operator/*": {"origins": "*", "methods": ["GET", "OPTIONS"]},
    })

    # --- Initialize observability ---
    init_logging(app)
    init_metrics(app)

    # --- Error handlers ---
    from trustgraph.middleware.errors import register_error_handlers
    register_error_handlers(app)

    # --- Mount blueprints ---
    with app.app_context():
        from trustgraph.routes import trust, public, health
        app.register_blueprint(trust.trust_bp)
        app.register_blueprint(public.public_bp)
        app.register_blueprint(health.health_bp)

    # --- DB init ---
    with app.app_context():
        # Make sure every model is registered on the metadata
        import trustgraph.models  # noqa: F401

        is_testing = app.config.get("TESTING") or os.getenv("TESTING", "false").lower() == "true"
        if is_testing:
            db.create_all()
        elif os.getenv("TRUSTGRAPH_DB_MIGRATE_ON_START", "true").lower() == "true":
            try:
                _migrate_db(app)
            except Exception as e:
                app.logger.error(f"Failed to run migrations: {e}")
                raise

        _seed_badge_definitions()

    return app
