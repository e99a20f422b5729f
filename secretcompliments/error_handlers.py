from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .core.constants import NOTICE_ERROR
from .errors import AppError, NotFoundError, ValidationError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _notice(message, status_code):
    return jsonify({"notice": {"message": message, "type": NOTICE_ERROR}}), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Turns a blank or missing field into a notice; nothing has changed."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _notice(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles lookups of groups that do not exist."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _notice(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles every other application error, including store failures."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _notice(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles missing or expired CSRF tokens."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return _notice(e.description, 400)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _notice("Not found.", 404)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _notice("Something went wrong.", 500)
