from __future__ import annotations

from datetime import date, datetime, timedelta
from urllib.parse import urlencode

from flask import Blueprint, current_app, request

from payroll_api.common.auth import admin_required, current_caller
from payroll_api.common.client import capture_metadata
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import created, ok
from payroll_api.common.paging import paginate
from payroll_api.extensions import db
from payroll_api.models.resignation import ResignationApplication, ResignationSignature
from payroll_api.services.resignation_service import ResignationLifecycle
from payroll_api.services.sign_tokens import (
    DirectAuthorized, SignatureTokenIssuer, TokenAuthorized,
)
from payroll_api.services.signature_store import SignatureStore

bp = Blueprint("resignations", __name__, url_prefix="/api/v1/resignations")

_DATE_FIELDS = ("resignation_date", "last_working_date")


# ---------- helpers ----------
def _svc() -> ResignationLifecycle:
    cfg = current_app.config
    tokens = SignatureTokenIssuer(db.session, ttl=timedelta(days=cfg["SIGN_TOKEN_TTL_DAYS"]))
    return ResignationLifecycle(db.session, store=SignatureStore(cfg["UPLOADS_ROOT"]), tokens=tokens)


def _parse_date(key, val):
    if val in (None, ""):
        return None
    if isinstance(val, date):
        return val
    # accepts plain dates and ISO timestamps ("2024-08-01T00:00:00Z")
    try:
        return datetime.strptime(str(val)[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{key} must be YYYY-MM-DD") from None


def _body_with_dates() -> dict:
    j = dict(request.get_json(silent=True) or {})
    for k in _DATE_FIELDS:
        if k in j:
            j[k] = _parse_date(k, j[k])
    return j


def _iso(v):
    return v.isoformat() if v else None


def _sig_row(s: ResignationSignature):
    return {
        "signer_type": s.signer_type,
        "signature_path": s.signature_path,
        "signature_hash": s.signature_hash,
        "ip_address": s.ip_address,
        "device_info": s.device_info,
        "signed_at": _iso(s.signed_at),
    }


def _row(x: ResignationApplication):
    emp = x.employee
    return {
        "id": x.uuid,
        "employee_id": x.employee_id,
        "employee_name": emp.name if emp else None,
        "employee_no": emp.employee_no if emp else None,
        "department": emp.department if emp else None,
        "position": emp.position if emp else None,
        "resignation_type": x.resignation_type,
        "resignation_date": _iso(x.resignation_date),
        "last_working_date": _iso(x.last_working_date),
        "reason": x.reason,
        "handover_notes": x.handover_notes,
        "status": x.status,
        "approved_by": x.approved_by,
        "approved_at": _iso(x.approved_at),
        "approval_comments": x.approval_comments,
        "signed_by": [s.signer_type for s in x.signatures],
        "created_at": _iso(x.created_at),
        "updated_at": _iso(x.updated_at),
    }


def _comments(j):
    # console clients send approval_comments; "comments" is the short form
    return j.get("approval_comments", j.get("comments"))


# ---------- admin ----------
@bp.get("")
@admin_required
def list_resignations():
    emp = request.args.get("employee_id")
    try:
        employee_id = int(emp) if emp else None
    except ValueError:
        raise ValidationError("employee_id must be integer") from None
    q = _svc().query(status=request.args.get("status") or None, employee_id=employee_id)
    rows, meta = paginate(q)
    return ok([_row(x) for x in rows], **meta)


@bp.post("")
@admin_required
def create_resignation():
    app_ = _svc().create(_body_with_dates())
    return created(_row(app_))


@bp.put("/<application_id>")
@admin_required
def update_resignation(application_id: str):
    app_ = _svc().update(application_id, _body_with_dates())
    return ok(_row(app_))


@bp.delete("/<application_id>")
@admin_required
def delete_resignation(application_id: str):
    _svc().delete(application_id)
    return ok({"id": application_id, "deleted": True})


@bp.post("/<application_id>/submit")
@admin_required
def submit_resignation(application_id: str):
    return ok(_row(_svc().submit(application_id)))


@bp.post("/<application_id>/approve")
@admin_required
def approve_resignation(application_id: str):
    j = request.get_json(silent=True) or {}
    caller = current_caller()
    app_ = _svc().approve(application_id, approver_id=caller.user_id if caller else None,
                          comments=_comments(j))
    return ok(_row(app_))


@bp.post("/<application_id>/reject")
@admin_required
def reject_resignation(application_id: str):
    j = request.get_json(silent=True) or {}
    return ok(_row(_svc().reject(application_id, comments=_comments(j))))


@bp.post("/<application_id>/sign-token")
@admin_required
def generate_sign_token(application_id: str):
    j = request.get_json(silent=True) or {}
    app_, tok = _svc().issue_token(application_id, j.get("signer_type"))
    query = urlencode({"id": app_.uuid, "token": tok.token, "type": tok.signer_type})
    return ok({
        "token": tok.token,
        "signer_type": tok.signer_type,
        "expires_at": _iso(tok.expires_at),
        "sign_url": f"{current_app.config['SIGN_BASE_URL']}?{query}",
    })


# ---------- public ----------
@bp.get("/<application_id>")
def get_resignation(application_id: str):
    return ok(_row(_svc().get(application_id)))


@bp.get("/<application_id>/signatures")
def list_resignation_signatures(application_id: str):
    return ok([_sig_row(s) for s in _svc().signatures(application_id)])


@bp.post("/sign")
def sign_resignation():
    j = request.get_json(silent=True) or {}
    token = request.args.get("token") or j.get("token")
    role = request.args.get("type") or j.get("signer_type")
    if token:
        auth = TokenAuthorized(token=token, role=role)
    else:
        application_id = j.get("application_id")
        if not application_id:
            raise ValidationError("application_id required")
        auth = DirectAuthorized(application_uuid=str(application_id), role=role)

    svc = _svc()
    sig = svc.sign(auth, j.get("signature_data"), capture_metadata(request, j))
    app_ = sig.application
    return created({**_sig_row(sig), "application_id": app_.uuid, "status": app_.status})
