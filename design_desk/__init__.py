import os
import logging

import click
import requests
from flask import Flask, jsonify

from design_desk.config import config_by_name
from design_desk.errors import DesignRequestError
from design_desk.extensions import db, migrate, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from design_desk import models  # noqa: F401

    # --- Register blueprints ---
    from design_desk.blueprints.design_requests import requests_bp

    app.register_blueprint(requests_bp)

    # --- Local file serving (dev only) ---
    if app.debug:
        @app.route("/uploads/<path:filepath>")
        def serve_upload(filepath):
            """Serve uploaded files from instance/uploads in dev mode."""
            from flask import send_from_directory
            upload_dir = os.path.join(app.instance_path, "uploads")
            return send_from_directory(upload_dir, filepath)

    # --- Error handlers ---
    @app.errorhandler(DesignRequestError)
    def domain_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(requests.RequestException)
    def upstream_error(e):
        app.logger.error(f"Upstream request failed: {e}")
        return jsonify({"ok": False, "error": "Upstream service unavailable.", "code": "upstream_error"}), 502

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"ok": False, "error": "Not found.", "code": "not_found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"ok": False, "error": "Method not allowed.", "code": "method_not_allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"ok": False, "error": "Too many submissions. Try again later.", "code": "rate_limited"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"ok": False, "error": "Internal server error.", "code": "server_error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("sync-card")
    @click.argument("request_id")
    def sync_card(request_id):
        """Create the Trello card for an existing request.

        Use after a failed sync at submission time. Running it for a
        request that already has a card creates a second card.

        Usage:
            flask sync-card 3f2b0c8e-...
        """
        from design_desk.services.card_sync_service import sync_request_card

        try:
            result = sync_request_card(request_id)
        except DesignRequestError as e:
            raise click.ClickException(e.message)
        except requests.RequestException as e:
            raise click.ClickException(f"Trello unreachable: {e}")

        click.echo(f"Card created: {result['card_url']}")
        click.echo(f"  Attachments: {result['attachments']}")
        if not result["linked"]:
            click.echo("  WARNING: card was not linked back to the request.")

    @app.cli.command("list-requests")
    @click.option("--status", default=None, help="Only show requests with this status.")
    def list_requests_cmd(status):
        """Print requests, newest first.

        Usage:
            flask list-requests
            flask list-requests --status pending
        """
        from design_desk.services.request_service import list_requests

        try:
            items = list_requests(status=status)
        except DesignRequestError as e:
            raise click.ClickException(e.message)

        if not items:
            click.echo("No requests found.")
            return

        for r in items:
            card = r.external_card_url or "(no card)"
            click.echo(f"{r.id}  {r.status:<12} {r.priority:<7} {r.title}  {card}")
