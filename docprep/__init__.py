import logging
import os
from types import SimpleNamespace

from flask import Flask, request

from .config import Config
from .conversion import build_converter
from .db import Database
from .storage import ObjectStore
from .uploads import UploadService

__all__ = ["create_app"]


def create_app(config=None, db=None, store=None, converter=None):
    """Build the Flask app.

    The database, object store and converter are built from configuration
    unless passed in, which is how the tests swap in their own.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    os.makedirs(app.config["PREVIEW_FOLDER"], exist_ok=True)

    if db is None:
        db = Database(app.config["DATABASE_PATH"])
        db.init_db()
    if store is None:
        store = ObjectStore(app.config["STORAGE_FOLDER"], bucket=app.config["STORAGE_BUCKET"])
    if converter is None:
        converter = build_converter(app.config)

    app.extensions["docprep"] = SimpleNamespace(
        db=db,
        store=store,
        converter=converter,
        uploads=UploadService(db, store, converter),
    )

    @app.before_request
    def log_incoming():
        app.logger.info(f"Incoming request: {request.method} {request.path}")

    @app.errorhandler(404)
    def page_not_found(e):
        app.logger.warning(f"404: {request.method} {request.path}")
        return "Not Found", 404

    @app.cli.command("init-db")
    def init_db_command():
        """Create the templates, signatories and annotations tables."""
        db.init_db()
        print("✅ Database tables created.")

    from .views import bp
    app.register_blueprint(bp)

    logging.getLogger(__name__).debug(f"App created with converter {type(converter).__name__}")
    return app
