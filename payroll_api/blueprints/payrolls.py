from __future__ import annotations

from flask import Blueprint, current_app, request

from payroll_api.common.auth import admin_required
from payroll_api.common.client import capture_metadata
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import created, ok
from payroll_api.common.paging import paginate
from payroll_api.extensions import db
from payroll_api.models.payroll import PayrollDocument, PayrollSignature
from payroll_api.services.notifier import PayrollNotifier
from payroll_api.services.payroll_service import PayrollLifecycle
from payroll_api.services.signature_store import SignatureStore

bp = Blueprint("payrolls", __name__, url_prefix="/api/v1/payrolls")


# ---------- helpers ----------
def _svc() -> PayrollLifecycle:
    cfg = current_app.config
    return PayrollLifecycle(
        db.session,
        store=SignatureStore(cfg["UPLOADS_ROOT"]),
        notifier=PayrollNotifier(db.session, sign_url=cfg["PAYROLL_VIEW_URL"]),
    )


def _money(v):
    return float(v) if v is not None else 0.0


def _iso(v):
    return v.isoformat() if v else None


def _row(svc: PayrollLifecycle, x: PayrollDocument):
    emp = x.employee
    tpl = x.template
    sig = x.signature
    return {
        "id": x.uuid,
        "employee_id": x.employee_id,
        "employee_name": emp.name if emp else None,
        "employee_no": emp.employee_no if emp else None,
        "department": emp.department if emp else None,
        "template_id": x.template_id,
        "template_name": tpl.name if tpl else None,
        "period": x.period,
        "work_days": x.work_days,
        "month_days": x.month_days,
        "is_prorated": x.is_prorated,
        "payroll_data": x.components,
        "original_gross": _money(x.original_gross),
        "total_gross": _money(x.total_gross),
        "total_net": _money(x.total_net),
        "status": svc.effective_status(x),
        "published_at": _iso(x.published_at),
        "signed_at": _iso(sig.signed_at) if sig else None,
        "created_at": _iso(x.created_at),
        "updated_at": _iso(x.updated_at),
    }


def _sig_row(payroll_uuid: str, s: PayrollSignature):
    return {
        "payroll_id": payroll_uuid,
        "signature_path": s.signature_path,
        "signature_hash": s.signature_hash,
        "ip_address": s.ip_address,
        "user_agent": s.user_agent,
        "device_info": s.device_info,
        "signed_at": _iso(s.signed_at),
    }


def _int_arg(name):
    v = request.args.get(name)
    if v in (None, ""):
        return None
    try:
        return int(v)
    except ValueError:
        raise ValidationError(f"{name} must be integer") from None


# ---------- admin ----------
@bp.get("")
@admin_required
def list_payrolls():
    svc = _svc()
    q = svc.query(
        status=request.args.get("status") or None,
        period=request.args.get("period") or None,
        employee_id=_int_arg("employee_id"),
    )
    rows, meta = paginate(q)
    return ok([_row(svc, x) for x in rows], **meta)


@bp.post("")
@admin_required
def create_payroll():
    svc = _svc()
    doc = svc.create(request.get_json(silent=True) or {})
    return created(_row(svc, doc))


@bp.put("/<payroll_id>")
@admin_required
def update_payroll(payroll_id: str):
    svc = _svc()
    doc = svc.update(payroll_id, request.get_json(silent=True) or {})
    return ok(_row(svc, doc))


@bp.delete("/<payroll_id>")
@admin_required
def delete_payroll(payroll_id: str):
    _svc().delete(payroll_id)
    return ok({"id": payroll_id, "deleted": True})


@bp.post("/publish")
@admin_required
def publish_payrolls():
    j = request.get_json(silent=True) or {}
    ids = j.get("payroll_ids")
    if not isinstance(ids, list):
        raise ValidationError("payroll_ids must be a list")
    svc = _svc()
    docs = svc.publish([str(i) for i in ids], notify=bool(j.get("notify_employees", j.get("notify"))))
    return ok({"published": len(docs), "payroll_ids": [d.uuid for d in docs]})


# ---------- public ----------
@bp.get("/<payroll_id>")
def get_payroll(payroll_id: str):
    svc = _svc()
    return ok(_row(svc, svc.get(payroll_id)))


@bp.get("/employee/<int:employee_id>")
def list_employee_payrolls(employee_id: int):
    svc = _svc()
    docs = svc.list_for_employee(employee_id, period=request.args.get("period") or None)
    return ok([_row(svc, x) for x in docs])


@bp.post("/sign")
def sign_payroll():
    j = request.get_json(silent=True) or {}
    payroll_id = str(j.get("payroll_id") or "")
    sig = _svc().sign(payroll_id, j.get("signature_data"), capture_metadata(request, j))
    return created({**_sig_row(payroll_id, sig), "status": "signed"})


@bp.get("/<payroll_id>/signature")
def get_payroll_signature(payroll_id: str):
    return ok(_sig_row(payroll_id, _svc().get_signature(payroll_id)))
