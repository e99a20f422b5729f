"""Routes for the group blueprint."""

from flask import g, jsonify

from secretcompliments.forms import validate_or_raise

from . import bp
from .forms import CreateGroupForm, JoinGroupForm, LeaveGroupForm


@bp.route("", methods=["POST"])
def create_group():
    """Create a new group and switch to it."""
    form = validate_or_raise(CreateGroupForm())
    group_id = g.session_ctx.create_group(form.name.data)
    return jsonify({"groupId": group_id}), 201


@bp.route("/join", methods=["POST"])
def join_group():
    """Join an existing group by id and switch to it."""
    form = validate_or_raise(JoinGroupForm())
    group = g.session_ctx.join_group(form.group_id.data)
    return jsonify({"groupId": group["id"], "name": group["name"]})


@bp.route("/leave", methods=["POST"])
def leave_group():
    """Stop showing the current group. The membership record is kept."""
    validate_or_raise(LeaveGroupForm())
    g.session_ctx.leave_group()
    return jsonify({"groupId": None})
