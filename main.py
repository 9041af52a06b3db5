#!/usr/bin/env python3
"""
CADLIB - CAD Asset Library Service
==================================

Single-command run:  python main.py

See config.py for all environment-variable tunables.
"""

import logging

from flask import Flask, jsonify

import config
from db import init_db
from api import api_bp
from services.asset_store import init_store


def create_app(db_url: str | None = None, library_dir=None) -> Flask:
    """Flask application factory.  Overrides are used by the tests."""

    app = Flask(__name__)
    app.secret_key = config.SECRET
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES

    # ── Initialise database ─────────────────────────────────────────
    db_url = db_url or config.DB_URL
    init_db(db_url)
    print(f"  Database: {db_url}")

    # ── Initialise asset store ──────────────────────────────────────
    store = init_store(library_dir or config.LIBRARY_DIR)
    print(f"  Library:  {store.root}")

    # ── Register blueprints ─────────────────────────────────────────
    app.register_blueprint(api_bp)

    # ── Error handlers ──────────────────────────────────────────────
    @app.errorhandler(404)
    def _404(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(413)
    def _413(e):
        return jsonify({"error": "upload too large",
                        "limit": config.MAX_UPLOAD_BYTES}), 413

    return app


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    print("=" * 56)
    print("  CADLIB - CAD Asset Library")
    print("=" * 56)

    app = create_app()

    print(f"\n  http://{config.HOST}:{config.PORT}/api/v1")
    print("=" * 56)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG, threaded=True)


if __name__ == "__main__":
    main()
