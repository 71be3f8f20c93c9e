import json

from flask import Blueprint, request

from payroll_api.common.auth import admin_required
from payroll_api.common.errors import NotFound, ValidationError
from payroll_api.common.http import created, ok
from payroll_api.extensions import db
from payroll_api.models.payroll import PayrollDocument, PayrollTemplate

bp = Blueprint("payroll_templates", __name__, url_prefix="/api/v1/templates")


def _row(x: PayrollTemplate):
    return {
        "id": x.id,
        "name": x.name,
        "description": x.description,
        "fields": x.fields_json,
        "is_active": x.is_active,
        "created_at": x.created_at.isoformat() if x.created_at else None,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }


def _fields_text(val):
    if val is None:
        return None
    if isinstance(val, str):
        try:
            json.loads(val)
        except ValueError:
            raise ValidationError("fields must be valid JSON") from None
        return val
    if not isinstance(val, (dict, list)):
        raise ValidationError("fields must be an object or array (JSON)")
    return json.dumps(val, ensure_ascii=False)


def _get(tpl_id: int) -> PayrollTemplate:
    x = db.session.get(PayrollTemplate, tpl_id)
    if x is None:
        raise NotFound("Template not found")
    return x


@bp.get("")
@admin_required
def list_templates():
    rows = (PayrollTemplate.query
            .filter(PayrollTemplate.is_active.is_(True))
            .order_by(PayrollTemplate.id.asc())
            .all())
    return ok([_row(x) for x in rows])


@bp.get("/<int:tpl_id>")
@admin_required
def get_template(tpl_id: int):
    return ok(_row(_get(tpl_id)))


@bp.post("")
@admin_required
def create_template():
    j = request.get_json(silent=True) or {}
    name = (j.get("name") or "").strip()
    if not name:
        raise ValidationError("name required")
    x = PayrollTemplate(
        name=name,
        description=j.get("description"),
        fields=_fields_text(j.get("fields")),
        is_active=bool(j.get("is_active", True)),
    )
    db.session.add(x)
    db.session.commit()
    return created(_row(x))


@bp.put("/<int:tpl_id>")
@admin_required
def update_template(tpl_id: int):
    x = _get(tpl_id)
    j = request.get_json(silent=True) or {}
    if "name" in j:
        name = (j.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty")
        x.name = name
    if "description" in j:
        x.description = j.get("description")
    if "fields" in j:
        x.fields = _fields_text(j.get("fields"))
    if "is_active" in j:
        x.is_active = bool(j.get("is_active"))
    db.session.commit()
    return ok(_row(x))


@bp.delete("/<int:tpl_id>")
@admin_required
def delete_template(tpl_id: int):
    x = _get(tpl_id)
    in_use = db.session.query(PayrollDocument.id).filter(PayrollDocument.template_id == x.id).first()
    if in_use is not None:
        # referenced payrolls must keep resolving their template
        x.is_active = False
        db.session.commit()
        return ok({"id": x.id, "deleted": False, "disabled": True})
    db.session.delete(x)
    db.session.commit()
    return ok({"id": tpl_id, "deleted": True})
