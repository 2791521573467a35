"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from therapist_access.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from therapist_access.database import init_engine
from therapist_access.api.routes import register_routes


def create_app(engine=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    if engine is None:
        try:
            print("[init] Initializing database connection...")
            engine = init_engine()
            print("[init] ✓ API server ready")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    register_routes(app, engine)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Therapist Access Policy – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] Page size: default {DEFAULT_PAGE_SIZE}, max {MAX_PAGE_SIZE}")
    print("\nAPI Endpoints:")
    print(f"  - GET  http://{host}:{port}/api/therapists")
    print(f"  - GET  http://{host}:{port}/api/therapists/<id>")
    print(f"  - GET  http://{host}:{port}/api/therapists/<id>/capabilities")
    print(f"  - GET  http://{host}:{port}/api/organisations/<org_id>/therapists")
    print(f"  - GET  http://{host}:{port}/api/organisations/<org_id>/therapists/manage")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
