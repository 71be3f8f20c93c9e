# payroll_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from payroll_api.common.http import fail
from payroll_api.extensions import db

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Base class for errors surfaced to the caller as a JSON envelope."""
    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message, code=None, status_code=None, payload=None):
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class NotFound(APIError):
    """Document, application, template or employee is absent."""
    status_code = 404
    default_code = "NOT_FOUND"


class InvalidState(APIError):
    """Action not permitted from the record's current status."""
    status_code = 409
    default_code = "INVALID_STATE"


class Conflict(APIError):
    """Duplicate signature, duplicate open application, already-signed payroll."""
    status_code = 409
    default_code = "CONFLICT"


class InvalidToken(APIError):
    """Signature token expired, used, or not matching the signer role."""
    status_code = 401
    default_code = "INVALID_OR_EXPIRED_TOKEN"


class ValidationError(APIError):
    status_code = 422
    default_code = "VALIDATION_ERROR"


class StorageError(APIError):
    """Durable store or artifact storage failure."""
    status_code = 500
    default_code = "STORAGE_ERROR"


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    if e.status_code >= 500:
        current_app.logger.error("%s: %s", e.code, e.message)
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400, code="HTTP_ERROR")

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    db.session.rollback()
    return fail(message="Conflict / integrity error", status=409, code="CONSTRAINT_ERROR",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500, code="INTERNAL_ERROR")
