"""
Flask application entry point for the housekeeping backend.

Exposes the assignment workflow and work queue under /api/v1.
"""

import logging

from flask import Flask

from housekeeping.config import config
from housekeeping.api import assignments_bp
from housekeeping.db.postgres import close_db_session, rollback_session


def create_app(init_database: bool = False):
    """Create and configure Flask app."""
    app = Flask(__name__)

    # Load config
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["DEBUG"] = config.DEBUG

    @app.after_request
    def after_request(response):
        response.headers.add("Access-Control-Allow-Origin", "*")
        response.headers.add("Access-Control-Allow-Headers", "Content-Type,Authorization")
        response.headers.add("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
        return response

    # Ensure clean session state at the start of each request
    @app.before_request
    def ensure_clean_session():
        rollback_session()

    # Clean up database session at the end of each request
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        close_db_session(exception)

    app.register_blueprint(assignments_bp)  # /api/v1/assignments/*, /api/v1/queue

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok", "firestore_enabled": config.ENABLE_FIRESTORE}

    # Initialize database tables if requested (development only)
    if init_database:
        with app.app_context():
            from housekeeping.db.postgres import init_db
            init_db()
            print("[Housekeeping] Database tables initialized")

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG if config.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(init_database=False)
    print(f"[Housekeeping] Starting server on port 5001...")
    print(f"[Housekeeping] Firestore enabled: {config.ENABLE_FIRESTORE}")
    print(f"[Housekeeping] Debug mode: {config.DEBUG}")
    print(f"[Housekeeping] Routes:")
    print(f"  - /api/v1/queue (Prioritized work queue)")
    print(f"  - /api/v1/assignments/* (Assignment workflow)")
    print(f"  - /health (Health check)")
    app.run(debug=config.DEBUG, port=5001)
