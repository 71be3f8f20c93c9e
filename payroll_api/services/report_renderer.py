import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from flask import render_template
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.common.errors import NotFound, StorageError, ValidationError
from payroll_api.models.resignation import (
    ResignationApplication, ResignationReport, ResignationSignature,
)
from .lifecycle import RESIGNATION_LIFECYCLE, ResignationStatus
from .sign_tokens import SIGNER_ROLES

log = logging.getLogger(__name__)

TYPE_LABELS = {
    "voluntary": "Voluntary resignation",
    "dismissal": "Dismissal",
    "contract_expiry": "Contract expiry",
}

ROLE_LABELS = {
    "employee": "Employee",
    "hr": "HR",
    "manager": "Manager",
}

REPORTABLE = (ResignationStatus.APPROVED, ResignationStatus.COMPLETED)


def render_resignation_report(application: ResignationApplication, employee,
                              signatures: Iterable[ResignationSignature],
                              report_input: Optional[Dict[str, Any]] = None) -> str:
    """
    Render the resignation handover document as HTML.
    Every signer role gets a slot; roles without a signature render as pending.
    """
    report_input = report_input or {}
    by_role = {s.signer_type: s for s in signatures}
    slots = [
        {"role": role, "label": ROLE_LABELS[role], "signature": by_role.get(role)}
        for role in SIGNER_ROLES
    ]
    return render_template(
        "resignation/report.html",
        application=application,
        employee=employee,
        type_label=TYPE_LABELS.get(application.resignation_type, application.resignation_type),
        work_summary=report_input.get("work_summary") or "",
        unfinished_tasks=report_input.get("unfinished_tasks") or "",
        property_returned=bool(report_input.get("company_property_returned")),
        financial_settled=bool(report_input.get("financial_settlement")),
        slots=slots,
        generated_at=report_input.get("generated_at") or datetime.utcnow(),
    )


class ResignationReportService:
    """CRUD for rendered resignation reports; content is re-rendered on every write."""

    FIELDS = ("work_summary", "unfinished_tasks", "company_property_returned", "financial_settlement")

    def __init__(self, session, now=datetime.utcnow):
        self.session = session
        self.now = now

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("Database write failed", payload=str(e)) from e

    def _application(self, application_uuid: str) -> ResignationApplication:
        app = self.session.query(ResignationApplication).filter_by(uuid=application_uuid).first()
        if app is None:
            raise NotFound("Resignation application not found")
        return app

    def _render(self, report: ResignationReport) -> None:
        app = report.application or self.session.get(ResignationApplication, report.application_id)
        report.generated_at = self.now()
        report.report_content = render_resignation_report(
            app, app.employee, app.signatures,
            {
                "work_summary": report.work_summary,
                "unfinished_tasks": report.unfinished_tasks,
                "company_property_returned": report.company_property_returned,
                "financial_settlement": report.financial_settlement,
                "generated_at": report.generated_at,
            },
        )

    def get(self, report_id: int) -> ResignationReport:
        report = self.session.get(ResignationReport, report_id)
        if report is None:
            raise NotFound("Resignation report not found")
        return report

    def query(self, application_uuid: Optional[str] = None):
        q = self.session.query(ResignationReport)
        if application_uuid:
            q = q.filter(ResignationReport.application_id == self._application(application_uuid).id)
        return q.order_by(ResignationReport.generated_at.desc(), ResignationReport.id.desc())

    def create(self, d: Dict[str, Any]) -> ResignationReport:
        application_uuid = d.get("application_id")
        if not application_uuid:
            raise ValidationError("application_id required")
        app = self._application(str(application_uuid))
        RESIGNATION_LIFECYCLE.require(app.status, REPORTABLE, "generate a report for")

        report = ResignationReport(
            application_id=app.id,
            work_summary=d.get("work_summary"),
            unfinished_tasks=d.get("unfinished_tasks"),
            company_property_returned=bool(d.get("company_property_returned", False)),
            financial_settlement=bool(d.get("financial_settlement", False)),
        )
        report.application = app
        self._render(report)
        self.session.add(report)
        self._commit()
        log.info("Generated report %s for resignation %s", report.id, app.uuid)
        return report

    def update(self, report_id: int, d: Dict[str, Any]) -> ResignationReport:
        report = self.get(report_id)
        for key in self.FIELDS:
            if key not in d:
                continue
            val = d[key]
            if key in ("company_property_returned", "financial_settlement"):
                val = bool(val)
            setattr(report, key, val)
        self._render(report)
        self._commit()
        return report

    def delete(self, report_id: int) -> None:
        report = self.get(report_id)
        self.session.delete(report)
        self._commit()
