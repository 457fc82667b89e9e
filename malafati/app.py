#!/usr/bin/env python3
"""
Malafati - Student Files Organizer
==================================
Run: python3 -m malafati.app
Then call the API at: http://localhost:5000/api/status
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from . import __version__
from .auth import init_auth
from .config import DEBUG, HOST, MAX_REPORTED_ERRORS, PORT, config
from .db import close_session, init_db
from .routes import register_routes


def create_app(overrides=None):
    """Build the Flask app. ``overrides`` replaces config keys (used by tests)."""
    app = Flask(__name__)
    app.config.update(config.to_dict())
    app.config["MAX_REPORTED_ERRORS"] = MAX_REPORTED_ERRORS
    if overrides:
        app.config.update(overrides)

    CORS(app)

    # ══════════════════════════════════════════════════════════════
    # DATABASE
    # ══════════════════════════════════════════════════════════════
    init_db(app.config["DATABASE_URL"])
    app.teardown_appcontext(close_session)

    # ══════════════════════════════════════════════════════════════
    # AUTHENTICATION
    # ══════════════════════════════════════════════════════════════
    init_auth(app)

    register_routes(app)

    @app.route('/api/status')
    def status():
        return jsonify({"status": "ok", "version": __version__})

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "غير مصرح بالوصول"}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"error": "File too large"}), 413

    return app


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print()
    print("+" + "=" * 50 + "+")
    print("|  Malafati - Student Files Organizer              |")
    print("+" + "=" * 50 + "+")
    print(f"|  API: http://localhost:{PORT}/api/status".ljust(51) + "|")
    print("|  Press Ctrl+C to stop                            |")
    print("+" + "=" * 50 + "+")
    print()

    create_app().run(host=HOST, port=PORT, debug=DEBUG)
