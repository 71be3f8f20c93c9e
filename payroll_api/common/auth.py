# payroll_api/common/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

from flask import g
from flask_jwt_extended import create_access_token, get_jwt, get_jwt_identity, jwt_required

from payroll_api.common.http import fail
from payroll_api.extensions import jwt

REMEMBER_EXPIRES = timedelta(days=7)
DEFAULT_EXPIRES = timedelta(hours=24)


@dataclass(frozen=True)
class CallerIdentity:
    user_id: int
    username: str
    expires_at: Optional[datetime] = None


def issue_admin_token(user, remember: bool = False):
    """Return (token, expires_at) for an admin user."""
    expires = REMEMBER_EXPIRES if remember else DEFAULT_EXPIRES
    expires_at = datetime.now(timezone.utc) + expires
    token = create_access_token(
        identity=str(user.id),
        additional_claims={"username": user.username},
        expires_delta=expires,
    )
    return token, expires_at


def _identity_from_claims() -> Optional[CallerIdentity]:
    claims = get_jwt() or {}
    uid = get_jwt_identity()
    if uid is None or not str(uid).isdigit():
        return None
    exp = claims.get("exp")
    return CallerIdentity(
        user_id=int(uid),
        username=claims.get("username") or "",
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
    )


def admin_required(fn):
    """
    Gate a view on a verified admin bearer token.
    The verified identity is placed on ``g.caller``.
    """
    @wraps(fn)
    @jwt_required()
    def inner(*args, **kwargs):
        ident = _identity_from_claims()
        if ident is None:
            return fail("Unauthorized", status=401, code="UNAUTHORIZED")
        g.caller = ident
        return fn(*args, **kwargs)
    return inner


def current_caller() -> Optional[CallerIdentity]:
    return getattr(g, "caller", None)


# ---------- envelope for JWT failures ----------

@jwt.unauthorized_loader
def _missing_token(reason):
    return fail("Login required", status=401, code="UNAUTHORIZED", detail=reason)

@jwt.invalid_token_loader
def _invalid_token(reason):
    return fail("Invalid token", status=401, code="UNAUTHORIZED", detail=reason)

@jwt.expired_token_loader
def _expired_token(_header, _payload):
    return fail("Token expired", status=401, code="UNAUTHORIZED")
