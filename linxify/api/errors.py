from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from linxify.api import api_bp
from linxify.extensions import db
from linxify.services.common import ValidationError


@api_bp.errorhandler(ValidationError)
def handle_validation_error(exc: ValidationError):
    db.session.rollback()
    return jsonify({"error": exc.message}), exc.status_code


@api_bp.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    return jsonify({"error": (exc.description or exc.name)}), exc.code


@api_bp.errorhandler(Exception)
def handle_unexpected_error(exc: Exception):
    db.session.rollback()
    current_app.logger.exception("Unhandled API error: %s", exc)
    return jsonify({"error": "internal server error"}), 500
