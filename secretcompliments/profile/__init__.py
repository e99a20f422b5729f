"""The profile blueprint."""

from flask import Blueprint

bp = Blueprint("profile", __name__, url_prefix="/api/profile")

from . import routes  # noqa: E402

__all__ = ["routes"]
