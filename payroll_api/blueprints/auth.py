from datetime import datetime, timezone

from flask import Blueprint, request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from payroll_api.common.auth import issue_admin_token
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok, fail
from payroll_api.models.admin_user import AdminUser

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        data = {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    if not username or not password:
        raise ValidationError("username and password required")

    u = AdminUser.query.filter_by(username=username).first()
    if not u or not u.is_active or not u.check_password(password):
        return fail("Invalid username or password", 401, code="INVALID_CREDENTIALS")

    token, expires_at = issue_admin_token(u, remember=bool(data.get("remember")))
    return ok({
        "token": token,
        "expires_at": expires_at.isoformat(),
        "username": u.username,
    })


@bp.post("/verify")
def verify():
    """Report whether a bearer token (header or body) is still valid."""
    data = request.get_json(silent=True) or {}
    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        header = request.headers.get("Authorization", "")
        if header.lower().startswith("bearer "):
            token = header[7:].strip()
    if not token:
        raise ValidationError("token required")

    try:
        claims = decode_token(token)
    except (PyJWTError, JWTExtendedException):
        return fail("Invalid token", 401, code="UNAUTHORIZED")

    exp = claims.get("exp")
    return ok({
        "valid": True,
        "user_id": int(claims["sub"]) if str(claims.get("sub", "")).isdigit() else claims.get("sub"),
        "username": claims.get("username"),
        "expires_at": datetime.fromtimestamp(exp, tz=timezone.utc).isoformat() if exp else None,
    })
