"""
Flask route handlers for the REST API.

Every surface goes through the same policy: browse listings through the
collection filter, single records through require_visible.
"""

import sys

from flask import request, jsonify
from sqlalchemy import text as sa_text

from therapist_access.actors import actor_resolver, resolve_actor
from therapist_access.collection import browse, filter_visible_for, manage, paginate
from therapist_access.config import DEFAULT_PAGE_SIZE
from therapist_access.database import fetch_therapist, fetch_therapists, membership_lookup
from therapist_access.errors import Forbidden
from therapist_access.models import Action, TherapistVisibility, parse_enum
from therapist_access.visibility import authorize, evaluate, require_visible
from therapist_access.api.auth import optional_token, token_required


def _paging_args():
    return (
        request.args.get("page_number", 0),
        request.args.get("page_size", DEFAULT_PAGE_SIZE),
    )


def _manage_row(row):
    return {
        "therapist": row["record"].to_dict(),
        "capabilities": row["capabilities"].to_dict(),
    }


def register_routes(app, engine):
    """Register all API routes on the Flask *app*."""
    lookup = membership_lookup(engine)

    def actor_for(organisation_id):
        return resolve_actor(request.session_data, organisation_id, lookup)

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Therapist Access Policy API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "browse": "/api/therapists",
                "organisation_browse": "/api/organisations/<org_id>/therapists",
                "manage": "/api/organisations/<org_id>/therapists/manage",
                "therapist": "/api/therapists/<id>",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": False}
        try:
            with engine.connect() as conn:
                conn.execute(sa_text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check failed: {e}", file=sys.stderr)

        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    # ── Browse ───────────────────────────────────────────────────────

    @app.route("/api/therapists", methods=["GET"])
    @optional_token
    def browse_all():
        page_number, page_size = _paging_args()
        visibility = None
        raw_visibility = request.args.get("visibility")
        if raw_visibility:
            visibility = parse_enum(TherapistVisibility, raw_visibility)
            if visibility is None:
                return jsonify({"error": f"Unknown visibility '{raw_visibility}'"}), 400
        records = fetch_therapists(engine, visibility=visibility)
        entries = filter_visible_for(actor_resolver(request.session_data, lookup), records)
        page = paginate([record for record, _ in entries], page_number, page_size)
        return jsonify(page.to_dict(lambda r: r.to_dict())), 200

    @app.route("/api/organisations/<organisation_id>/therapists", methods=["GET"])
    @optional_token
    def browse_organisation(organisation_id):
        page_number, page_size = _paging_args()
        actor = actor_for(organisation_id)
        page = browse(actor, fetch_therapists(engine, organisation_id), page_number, page_size)
        return jsonify(page.to_dict(lambda r: r.to_dict())), 200

    @app.route("/api/organisations/<organisation_id>/therapists/manage", methods=["GET"])
    @token_required
    def manage_organisation(organisation_id):
        page_number, page_size = _paging_args()
        actor = actor_for(organisation_id)
        page = manage(actor, fetch_therapists(engine, organisation_id), page_number, page_size)
        body = page.to_dict(_manage_row)
        body["role"] = actor.organisation_role.value
        return jsonify(body), 200

    # ── Single record ────────────────────────────────────────────────

    @app.route("/api/therapists/<therapist_id>", methods=["GET"])
    @optional_token
    def get_therapist(therapist_id):
        record = fetch_therapist(engine, therapist_id)
        actor = actor_for(record.organisation_id if record else None)
        require_visible(actor, record)
        return jsonify({"therapist": record.to_dict()}), 200

    @app.route("/api/therapists/<therapist_id>/capabilities", methods=["GET"])
    @optional_token
    def get_capabilities(therapist_id):
        record = fetch_therapist(engine, therapist_id)
        actor = actor_for(record.organisation_id if record else None)
        require_visible(actor, record)
        return jsonify({
            "therapist_id": record.id,
            "capabilities": evaluate(actor, record).to_dict(),
        }), 200

    @app.route("/api/therapists/<therapist_id>/permissions/<action>", methods=["GET"])
    @token_required
    def check_permission(therapist_id, action):
        try:
            action = Action(action.lower())
        except ValueError:
            return jsonify({"error": f"Unknown action '{action}'"}), 400

        record = fetch_therapist(engine, therapist_id)
        actor = actor_for(record.organisation_id if record else None)
        authorize(actor, record, action)
        return jsonify({"therapist_id": record.id, "action": action.value, "allowed": True}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(Forbidden)
    def forbidden(e):
        # Hidden and missing records must look the same.
        if e.hidden:
            return jsonify({"error": "Therapist not found"}), 404
        return jsonify({"error": "Forbidden", "message": str(e)}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
