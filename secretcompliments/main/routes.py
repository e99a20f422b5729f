"""Routes for the main blueprint."""

from flask import g, jsonify
from flask_wtf.csrf import generate_csrf

from . import bp


@bp.route("/state", methods=["GET"])
def state():
    """Return the session's live views and any pending notices."""
    ctx = g.session_ctx
    payload = ctx.snapshot()
    payload["notices"] = ctx.drain_notices()
    payload["csrfToken"] = generate_csrf()
    return jsonify(payload)
