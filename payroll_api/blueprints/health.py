from flask import Blueprint
from sqlalchemy import text

from payroll_api.common.http import ok, fail
from payroll_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        return fail("Database unavailable", 503, code="DB_UNAVAILABLE", detail=str(e))
    return ok({"status": "ok"})
