"""Routes for the compliment blueprint."""

from flask import g, jsonify

from secretcompliments.forms import validate_or_raise

from . import bp
from .forms import ComplimentForm


@bp.route("", methods=["POST"])
def send_compliment():
    """Send an anonymous compliment to another member of the current group."""
    form = validate_or_raise(ComplimentForm())
    compliment_id = g.session_ctx.send_compliment(
        form.receiver_id.data, form.message.data
    )
    return jsonify({"complimentId": compliment_id}), 201
