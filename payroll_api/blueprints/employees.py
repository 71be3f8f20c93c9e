from __future__ import annotations

from datetime import date, datetime

from flask import Blueprint, request
from sqlalchemy import or_

from payroll_api.common.auth import admin_required
from payroll_api.common.errors import Conflict, NotFound, ValidationError
from payroll_api.common.http import created, ok
from payroll_api.common.paging import paginate
from payroll_api.extensions import db
from payroll_api.models.employee import Employee

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

EMPLOYEE_STATUSES = ("active", "inactive", "resigned")
_TEXT_FIELDS = ("name", "employee_no", "department", "position", "email", "phone")


# ---------- helpers ----------
def _parse_date(key, val):
    if val in (None, ""):
        return None
    if isinstance(val, date):
        return val
    for fmt in ("%Y-%m-%d", "%Y/%m/%d"):
        try:
            return datetime.strptime(str(val)[:10], fmt).date()
        except ValueError:
            pass
    raise ValidationError(f"{key} must be YYYY-MM-DD")


def _row(x: Employee):
    return {
        "id": x.id,
        "name": x.name,
        "employee_no": x.employee_no,
        "department": x.department,
        "position": x.position,
        "email": x.email,
        "phone": x.phone,
        "status": x.status,
        "join_date": x.join_date.isoformat() if x.join_date else None,
        "leave_date": x.leave_date.isoformat() if x.leave_date else None,
        "created_at": x.created_at.isoformat() if x.created_at else None,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }


def _get_live(emp_id: int) -> Employee:
    x = db.session.get(Employee, emp_id)
    if x is None or x.deleted_at is not None:
        raise NotFound("Employee not found", code="EMPLOYEE_NOT_FOUND")
    return x


def _ensure_unique_no(employee_no: str, exclude_id=None):
    q = Employee.query.filter(Employee.employee_no == employee_no)
    if exclude_id is not None:
        q = q.filter(Employee.id != exclude_id)
    if q.first() is not None:
        raise Conflict("employee_no already exists")


def _apply(x: Employee, j: dict, partial: bool):
    for k in _TEXT_FIELDS:
        if k in j or not partial:
            val = j.get(k)
            setattr(x, k, val.strip() if isinstance(val, str) else val)
    if "status" in j and j["status"]:
        if j["status"] not in EMPLOYEE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(EMPLOYEE_STATUSES)}")
        x.status = j["status"]
    if "join_date" in j:
        x.join_date = _parse_date("join_date", j.get("join_date"))
    if "leave_date" in j:
        x.leave_date = _parse_date("leave_date", j.get("leave_date"))


# ---------- routes ----------
@bp.get("")
@admin_required
def list_employees():
    q = Employee.query.filter(Employee.deleted_at.is_(None))
    status = request.args.get("status")
    if status:
        q = q.filter(Employee.status == status)
    qs = (request.args.get("q") or "").strip()
    if qs:
        like = f"%{qs}%"
        q = q.filter(or_(Employee.name.ilike(like), Employee.employee_no.ilike(like)))
    rows, meta = paginate(q.order_by(Employee.id.desc()))
    return ok([_row(x) for x in rows], **meta)


@bp.get("/<int:emp_id>")
@admin_required
def get_employee(emp_id: int):
    return ok(_row(_get_live(emp_id)))


@bp.post("")
@admin_required
def create_employee():
    j = request.get_json(silent=True) or {}
    name = (j.get("name") or "").strip()
    employee_no = (j.get("employee_no") or "").strip()
    if not name or not employee_no:
        raise ValidationError("name and employee_no required")
    _ensure_unique_no(employee_no)

    x = Employee(status="active")
    _apply(x, j, partial=False)
    db.session.add(x)
    db.session.commit()
    return created(_row(x))


@bp.put("/<int:emp_id>")
@admin_required
def update_employee(emp_id: int):
    x = _get_live(emp_id)
    j = request.get_json(silent=True) or {}
    if "name" in j and not (j.get("name") or "").strip():
        raise ValidationError("name cannot be empty")
    if "employee_no" in j:
        no = (j.get("employee_no") or "").strip()
        if not no:
            raise ValidationError("employee_no cannot be empty")
        _ensure_unique_no(no, exclude_id=x.id)
    _apply(x, j, partial=True)
    db.session.commit()
    return ok(_row(x))


@bp.delete("/<int:emp_id>")
@admin_required
def delete_employee(emp_id: int):
    # payrolls and resignations keep pointing at the row, so it is only marked
    x = _get_live(emp_id)
    x.soft_delete()
    db.session.commit()
    return ok({"id": x.id, "deleted": True})
