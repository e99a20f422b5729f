"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, g, request
from flask import session as flask_session
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import SESSION_USER_ID
from .extensions import csrf
from .session.registry import SessionRegistry
from .session.side_channel import LastGroupStore

SESSION_FREE_ENDPOINTS = {"health_check", "static"}


def _env_flag(name, default):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from the best available credentials."""
    cred = None
    project_id = None

    # First, try the environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # Then a credentials file next to the package (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    project_id = json.load(f).get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None
        try:
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        LAST_GROUP_FILE=os.environ.get("LAST_GROUP_FILE")
        or os.path.join(app.instance_path, "last_group.json"),
        ENFORCE_MEMBERSHIP=_env_flag("ENFORCE_MEMBERSHIP", "true"),
        BACKGROUND_DISPOSAL=_env_flag("BACKGROUND_DISPOSAL", "true"),
        SESSION_IDLE_TTL=int(os.environ.get("SESSION_IDLE_TTL") or 3600),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Ensure the instance folder exists
    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    csrf.init_app(app)

    registry = SessionRegistry(
        lambda: firestore.client(),
        LastGroupStore(app.config["LAST_GROUP_FILE"]),
        enforce_membership=app.config["ENFORCE_MEMBERSHIP"],
        runner=None if app.config["BACKGROUND_DISPOSAL"] else (lambda task: task()),
        idle_ttl=app.config["SESSION_IDLE_TTL"],
    )
    app.extensions["session_registry"] = registry

    # Register blueprints
    from . import main as main_bp

    app.register_blueprint(main_bp.bp)

    from . import profile as profile_bp

    app.register_blueprint(profile_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import compliment as compliment_bp

    app.register_blueprint(compliment_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def attach_session():
        """Attach the caller's live session to g, creating the identity if needed."""
        g.session_ctx = None
        # Unrouted requests 404 without minting an identity
        if request.endpoint is None or request.endpoint in SESSION_FREE_ENDPOINTS:
            return
        ctx = registry.attach(flask_session.get(SESSION_USER_ID))
        if ctx.user_id is None:
            app.logger.warning("Identity provider not ready; serving unresolved session")
        else:
            flask_session[SESSION_USER_ID] = ctx.user_id
            flask_session.permanent = True
        g.session_ctx = ctx

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
