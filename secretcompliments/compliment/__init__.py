"""The compliment blueprint."""

from flask import Blueprint

bp = Blueprint("compliment", __name__, url_prefix="/api/compliments")

from . import routes  # noqa: E402

__all__ = ["routes"]
