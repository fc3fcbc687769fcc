"""Requests blueprint — /api/requests/*

JSON API used by the request form and the reviewer dashboard. Domain errors
raised by the services are rendered by the app-level handler in create_app().
Every route except submission requires a Bearer token when REVIEWER_API_KEY
is set, since listings carry requester names and emails.

Route Map:
  POST   /api/requests               — Submit a new request (form + files or JSON)
  GET    /api/requests               — List requests (?status=pending)
  GET    /api/requests/stats         — Counts per status
  GET    /api/requests/<id>          — Request detail
  POST   /api/requests/<id>/status   — Change status
  DELETE /api/requests/<id>          — Delete a completed request
  POST   /api/requests/<id>/sync     — Re-run the Trello card sync
"""

import hmac
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from design_desk.errors import ValidationError
from design_desk.extensions import limiter
from design_desk.services import card_sync_service, request_service

requests_bp = Blueprint("requests", __name__, url_prefix="/api/requests")


def _reviewer_auth(f):
    """Require a Bearer token matching REVIEWER_API_KEY, when one is configured."""
    @wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config.get("REVIEWER_API_KEY") or ""
        if not expected:
            return f(*args, **kwargs)

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
            if hmac.compare_digest(token, expected):
                return f(*args, **kwargs)
            return jsonify({"ok": False, "error": "Invalid API key"}), 401
        return jsonify({"ok": False, "error": "Unauthorized"}), 401
    return decorated


def _submit_rate_limit():
    return current_app.config.get("SUBMIT_RATE_LIMIT", "30 per hour")


# ─── Intake ──────────────────────────────────────────────────────

@requests_bp.route("", methods=["POST"])
@limiter.limit(_submit_rate_limit)
def submit():
    """Accept a new design request.

    Accepts multipart/form-data (fields + reference_images files) or a
    JSON body without files.

    Returns: 201 { ok: true, id: "..." }
    """
    if request.is_json:
        fields = request.get_json(silent=True) or {}
        files = []
    else:
        fields = request.form.to_dict()
        files = [f for f in request.files.getlist("reference_images") if f and f.filename]

    design_request = request_service.submit_request(fields, files)
    return jsonify({"ok": True, "id": design_request.id}), 201


# ─── Listing ─────────────────────────────────────────────────────

@requests_bp.route("", methods=["GET"])
@_reviewer_auth
def list_requests():
    status = request.args.get("status") or None
    if status == "all":
        status = None
    items = request_service.list_requests(status=status)
    return jsonify([r.to_dict() for r in items])


@requests_bp.route("/stats")
@_reviewer_auth
def stats():
    return jsonify(request_service.status_counts())


@requests_bp.route("/<request_id>")
@_reviewer_auth
def detail(request_id):
    return jsonify(request_service.get_request(request_id).to_dict())


# ─── Reviewer actions ────────────────────────────────────────────

@requests_bp.route("/<request_id>/status", methods=["POST"])
@_reviewer_auth
def update_status(request_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    new_status = data.get("status") or ""
    if not isinstance(new_status, str):
        raise ValidationError("status must be a string.")
    new_status = new_status.strip()
    if not new_status:
        raise ValidationError("status is required.")
    design_request = request_service.set_status(request_id, new_status)
    return jsonify(design_request.to_dict())


@requests_bp.route("/<request_id>", methods=["DELETE"])
@_reviewer_auth
def delete(request_id):
    request_service.delete_request(request_id)
    return jsonify({"success": True})


@requests_bp.route("/<request_id>/sync", methods=["POST"])
@_reviewer_auth
def sync(request_id):
    """Manual re-trigger of the card sync. Creates a new card every time."""
    result = card_sync_service.sync_request_card(request_id)
    return jsonify({"ok": True, **result})
