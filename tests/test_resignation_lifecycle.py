from datetime import date

import pytest

from payroll_api.common.errors import (
    Conflict, InvalidState, InvalidToken, NotFound, ValidationError,
)
from payroll_api.models.employee import Employee
from payroll_api.models.resignation import ResignationSignature, ResignationSignToken
from payroll_api.services.resignation_service import ResignationLifecycle
from payroll_api.services.sign_tokens import (
    DirectAuthorized, SignatureTokenIssuer, TokenAuthorized,
)
from payroll_api.services.signature_store import SignatureStore


@pytest.fixture
def svc(app, session, clock):
    return ResignationLifecycle(
        session,
        store=SignatureStore(app.config["UPLOADS_ROOT"]),
        tokens=SignatureTokenIssuer(session, now=clock),
        now=clock,
    )


def _payload(employee, **kw):
    d = {
        "employee_id": employee.id,
        "resignation_type": "voluntary",
        "resignation_date": date(2024, 8, 1),
        "last_working_date": date(2024, 8, 31),
        "reason": "Relocating",
        "handover_notes": "Ledger handed to Zhang",
    }
    d.update(kw)
    return d


def _sign(svc, app_, role, png, clock):
    clock.advance(minutes=1)
    return svc.sign(DirectAuthorized(app_.uuid, role), png)


def test_create_starts_in_draft(svc, employee):
    a = svc.create(_payload(employee))
    assert a.status == "draft"
    assert a.employee.name == "Li Wei"


@pytest.mark.parametrize("missing", ["employee_id", "resignation_type", "resignation_date",
                                     "last_working_date", "reason"])
def test_create_requires_fields(svc, employee, missing):
    with pytest.raises(ValidationError):
        svc.create(_payload(employee, **{missing: None}))


def test_create_rejects_unknown_type(svc, employee):
    with pytest.raises(ValidationError):
        svc.create(_payload(employee, resignation_type="retirement"))


def test_create_unknown_employee(svc):
    with pytest.raises(NotFound) as ei:
        svc.create({"employee_id": 404, "resignation_type": "voluntary",
                    "resignation_date": date(2024, 8, 1), "last_working_date": date(2024, 8, 31),
                    "reason": "x"})
    assert ei.value.code == "EMPLOYEE_NOT_FOUND"


def test_duplicate_open_application(svc, employee):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    with pytest.raises(Conflict) as ei:
        svc.create(_payload(employee))
    assert ei.value.code == "DUPLICATE_OPEN_APPLICATION"


def test_rejected_application_does_not_block_new_one(svc, employee):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    svc.reject(a.uuid, comments="Please reconsider")
    b = svc.create(_payload(employee, reason="Second attempt"))
    assert b.status == "draft"


def test_partial_update_keeps_other_fields(svc, employee):
    a = svc.create(_payload(employee))
    svc.update(a.uuid, {"reason": "New job", "handover_notes": "", "resignation_type": None})
    assert a.reason == "New job"
    assert a.handover_notes == "Ledger handed to Zhang"
    assert a.resignation_type == "voluntary"


def test_update_may_only_request_submitted(svc, employee):
    a = svc.create(_payload(employee))
    with pytest.raises(InvalidState):
        svc.update(a.uuid, {"status": "approved"})
    svc.update(a.uuid, {"status": "submitted"})
    assert a.status == "submitted"


def test_update_after_approval_is_invalid(svc, employee):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    svc.approve(a.uuid)
    with pytest.raises(InvalidState):
        svc.update(a.uuid, {"reason": "late change"})


def test_submit_twice(svc, employee):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    with pytest.raises(InvalidState):
        svc.submit(a.uuid)


def test_delete_only_in_draft(svc, employee):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    with pytest.raises(InvalidState):
        svc.delete(a.uuid)

    svc.reject(a.uuid)
    b = svc.create(_payload(employee))
    svc.delete(b.uuid)
    with pytest.raises(NotFound):
        svc.get(b.uuid)


def test_approve_requires_submitted(svc, employee):
    a = svc.create(_payload(employee))
    with pytest.raises(InvalidState):
        svc.approve(a.uuid)


def test_approve_marks_employee_resigned(svc, session, employee, admin, clock):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    svc.approve(a.uuid, approver_id=admin.id, comments="OK")
    assert a.status == "approved"
    assert a.approved_by == admin.id
    assert a.approved_at == clock()
    assert a.approval_comments == "OK"
    emp = session.get(Employee, employee.id)
    assert emp.status == "resigned"
    assert emp.leave_date == date(2024, 8, 31)


def test_reject_is_terminal(svc, employee, png):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    svc.reject(a.uuid, comments="no")
    assert a.approval_comments == "no"
    with pytest.raises(InvalidState):
        svc.approve(a.uuid)
    with pytest.raises(InvalidState):
        svc.sign(DirectAuthorized(a.uuid, "employee"), png)


def test_three_signatures_complete_approved_application(svc, employee, png, clock):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    svc.approve(a.uuid)

    _sign(svc, a, "employee", png, clock)
    _sign(svc, a, "hr", png, clock)
    assert svc.get(a.uuid).status == "approved"

    _sign(svc, a, "manager", png, clock)
    assert svc.get(a.uuid).status == "completed"
    assert [s.signer_type for s in svc.signatures(a.uuid)] == ["employee", "hr", "manager"]

    with pytest.raises(InvalidState):
        svc.sign(DirectAuthorized(a.uuid, "hr"), png)


def test_signatures_before_approval_complete_on_approve(svc, employee, png, clock):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    for role in ("employee", "hr", "manager"):
        _sign(svc, a, role, png, clock)
    # the table has no submitted -> completed edge
    assert svc.get(a.uuid).status == "submitted"

    svc.approve(a.uuid)
    assert svc.get(a.uuid).status == "completed"


def test_duplicate_role_signature_conflicts(svc, session, employee, png, clock):
    a = svc.create(_payload(employee))
    _sign(svc, a, "employee", png, clock)
    with pytest.raises(Conflict) as ei:
        _sign(svc, a, "employee", png, clock)
    assert ei.value.code == "DUPLICATE_SIGNATURE"
    assert session.query(ResignationSignature).filter_by(application_id=a.id).count() == 1


def test_sign_rejects_unknown_role(svc, employee, png):
    a = svc.create(_payload(employee))
    with pytest.raises(ValidationError):
        svc.sign(DirectAuthorized(a.uuid, "ceo"), png)


def test_sign_unknown_application(svc, png):
    with pytest.raises(NotFound):
        svc.sign(DirectAuthorized("missing", "hr"), png)


def test_sign_with_token(svc, session, employee, png):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    _, tok = svc.issue_token(a.uuid, "hr")

    sig = svc.sign(TokenAuthorized(tok.token, "hr"), png, {"ip_address": "203.0.113.9"})
    assert sig.signer_type == "hr"
    assert sig.ip_address == "203.0.113.9"
    assert session.query(ResignationSignToken).filter_by(token=tok.token).one().used is True

    with pytest.raises(InvalidToken):
        svc.sign(TokenAuthorized(tok.token, "hr"), png)


def test_token_role_mismatch(svc, employee, png):
    a = svc.create(_payload(employee))
    _, tok = svc.issue_token(a.uuid, "hr")
    with pytest.raises(InvalidToken):
        svc.sign(TokenAuthorized(tok.token, "manager"), png)


def test_failed_signature_leaves_token_unused(svc, session, employee, png):
    a = svc.create(_payload(employee))
    svc.submit(a.uuid)
    _, tok = svc.issue_token(a.uuid, "employee")
    svc.reject(a.uuid)

    with pytest.raises(InvalidState):
        svc.sign(TokenAuthorized(tok.token, "employee"), png)
    assert session.query(ResignationSignToken).filter_by(token=tok.token).one().used is False


def test_query_filters(svc, session, employee):
    other = Employee(name="Chen Jie", employee_no="E002")
    session.add(other)
    session.commit()
    a = svc.create(_payload(employee))
    b = svc.create(_payload(other))
    svc.submit(b.uuid)

    assert [x.uuid for x in svc.query(status="submitted")] == [b.uuid]
    assert [x.uuid for x in svc.query(employee_id=employee.id)] == [a.uuid]
