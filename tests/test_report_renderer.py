from datetime import date, datetime

import pytest

from payroll_api.common.errors import InvalidState, NotFound, ValidationError
from payroll_api.models.resignation import ResignationApplication, ResignationSignature
from payroll_api.services.report_renderer import ResignationReportService, render_resignation_report


@pytest.fixture
def application(session, employee):
    a = ResignationApplication(uuid="6a1f8f8e-2c11-4d3e-b7a0-5d2b8f0c9e77", employee_id=employee.id,
                               resignation_type="contract_expiry", resignation_date=date(2024, 9, 1),
                               last_working_date=date(2024, 9, 30), reason="Contract ended",
                               status="approved")
    session.add(a)
    session.commit()
    return a


def _signature(session, application, role, when):
    s = ResignationSignature(application_id=application.id, signer_type=role,
                             signature_path=f"/uploads/signatures/{role}.png",
                             signature_hash=role[0] * 64, signed_at=when)
    session.add(s)
    session.commit()
    return s


def test_render_marks_missing_signers_pending(session, application, employee):
    _signature(session, application, "employee", datetime(2024, 9, 2, 10, 30))
    html = render_resignation_report(application, employee, application.signatures, {
        "work_summary": "Closed Q3 books",
        "unfinished_tasks": "Audit follow-up",
        "company_property_returned": True,
    })
    assert "Li Wei" in html
    assert "Contract expiry" in html
    assert "Closed Q3 books" in html
    assert "Audit follow-up" in html
    assert "2024-09-30" in html
    assert "/uploads/signatures/employee.png" in html
    assert "2024-09-02 10:30" in html
    assert html.count('<span class="pending">pending</span>') == 2


def test_render_escapes_user_text(application, employee):
    html = render_resignation_report(application, employee, [], {"work_summary": "<script>x</script>"})
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html


def test_report_crud(session, application, clock):
    svc = ResignationReportService(session, now=clock)
    r = svc.create({"application_id": application.uuid, "work_summary": "Handed over",
                    "financial_settlement": True})
    assert r.id is not None
    assert r.generated_at == clock()
    assert "Handed over" in r.report_content

    clock.advance(hours=1)
    _signature(session, application, "hr", clock())
    svc.update(r.id, {"unfinished_tasks": "None"})
    assert r.unfinished_tasks == "None"
    assert r.work_summary == "Handed over"
    assert "/uploads/signatures/hr.png" in r.report_content
    assert r.generated_at == clock()

    assert [x.id for x in svc.query(application.uuid)] == [r.id]
    svc.delete(r.id)
    with pytest.raises(NotFound):
        svc.get(r.id)


def test_report_requires_approved_or_completed(session, application):
    application.status = "submitted"
    session.commit()
    svc = ResignationReportService(session)
    with pytest.raises(InvalidState):
        svc.create({"application_id": application.uuid})
    with pytest.raises(ValidationError):
        svc.create({})
    with pytest.raises(NotFound):
        svc.create({"application_id": "missing"})
