"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, g, jsonify, session

from .core.constants import (
    CALENDAR_HTTP_TIMEOUT,
    DEFAULT_TIME_ZONE,
    EXPIRY_SWEEP_SECONDS,
)
from .extensions import csrf
from .sports import SPORTS


def _env_flag(name, default):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def init_firebase(app):
    """Initialize the Firebase Admin SDK from the best available credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        GOOGLE_CLIENT_ID=os.environ.get("GOOGLE_CLIENT_ID"),
        GOOGLE_CLIENT_SECRET=os.environ.get("GOOGLE_CLIENT_SECRET"),
        TIME_ZONE=os.environ.get("TIME_ZONE") or DEFAULT_TIME_ZONE,
        EXPIRY_SWEEP_SECONDS=int(
            os.environ.get("EXPIRY_SWEEP_SECONDS") or EXPIRY_SWEEP_SECONDS
        ),
        CALENDAR_HTTP_TIMEOUT=float(
            os.environ.get("CALENDAR_HTTP_TIMEOUT") or CALENDAR_HTTP_TIMEOUT
        ),
        CHALLENGE_TIME_REQUIRED=_env_flag("CHALLENGE_TIME_REQUIRED", "true"),
        # Calendar cleanup for deleted events runs on a background thread.
        CALENDAR_SYNC_ENABLED=_env_flag("CALENDAR_SYNC_ENABLED", "true"),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        init_firebase(app)

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import events as events_bp

    app.register_blueprint(events_bp.bp)

    from . import calendar as calendar_bp

    app.register_blueprint(calendar_bp.bp)

    from . import challenge as challenge_bp

    app.register_blueprint(challenge_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """Expose the session's display name as g.user_name."""
        g.user_name = session.get("user_name")

    @app.route("/sports")
    def list_sports():
        """Return the sport catalog."""
        return jsonify([sport.to_dict() for sport in SPORTS])

    return app
