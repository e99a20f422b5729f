"""Routes for the profile blueprint."""

from flask import g, jsonify

from secretcompliments.forms import validate_or_raise

from . import bp
from .forms import DisplayNameForm


@bp.route("", methods=["POST"])
def save_name():
    """Set the current user's display name."""
    form = validate_or_raise(DisplayNameForm())
    display_name = g.session_ctx.save_display_name(form.name.data)
    return jsonify({"displayName": display_name})
