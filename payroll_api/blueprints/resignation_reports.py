from flask import Blueprint, request

from payroll_api.common.auth import admin_required
from payroll_api.common.http import created, ok
from payroll_api.common.paging import paginate
from payroll_api.extensions import db
from payroll_api.models.resignation import ResignationReport
from payroll_api.services.report_renderer import ResignationReportService

bp = Blueprint("resignation_reports", __name__, url_prefix="/api/v1/resignation-reports")


def _row(x: ResignationReport, with_content=True):
    d = {
        "id": x.id,
        "application_id": x.application.uuid if x.application else None,
        "work_summary": x.work_summary,
        "unfinished_tasks": x.unfinished_tasks,
        "company_property_returned": x.company_property_returned,
        "financial_settlement": x.financial_settlement,
        "generated_at": x.generated_at.isoformat() if x.generated_at else None,
    }
    if with_content:
        d["report_content"] = x.report_content
    return d


@bp.get("")
@admin_required
def list_reports():
    q = ResignationReportService(db.session).query(request.args.get("application_id") or None)
    rows, meta = paginate(q)
    return ok([_row(x, with_content=False) for x in rows], **meta)


@bp.post("")
@admin_required
def create_report():
    x = ResignationReportService(db.session).create(request.get_json(silent=True) or {})
    return created(_row(x))


@bp.get("/<int:report_id>")
@admin_required
def get_report(report_id: int):
    return ok(_row(ResignationReportService(db.session).get(report_id)))


@bp.put("/<int:report_id>")
@admin_required
def update_report(report_id: int):
    x = ResignationReportService(db.session).update(report_id, request.get_json(silent=True) or {})
    return ok(_row(x))


@bp.delete("/<int:report_id>")
@admin_required
def delete_report(report_id: int):
    ResignationReportService(db.session).delete(report_id)
    return ok({"id": report_id, "deleted": True})
