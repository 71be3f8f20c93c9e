from __future__ import annotations

import logging
import uuid as uuidlib
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from payroll_api.common.errors import (
    APIError, Conflict, InvalidState, NotFound, StorageError, ValidationError,
)
from payroll_api.models.employee import Employee
from payroll_api.models.resignation import (
    ResignationApplication, ResignationSignature, ResignationSignToken,
)
from .lifecycle import OPEN_RESIGNATION_STATES, RESIGNATION_LIFECYCLE, ResignationStatus
from .sign_tokens import (
    SIGNER_ROLES, DirectAuthorized, SignatureTokenIssuer, SignerAuthorization,
    TokenAuthorized, VerifiedSigner, ensure_role,
)

log = logging.getLogger(__name__)

RESIGNATION_TYPES = ("voluntary", "dismissal", "contract_expiry")
REQUIRED_SIGNATURES = len(SIGNER_ROLES)

# fields a partial update may touch, in the order they are applied
_UPDATABLE = ("resignation_type", "resignation_date", "last_working_date", "reason", "handover_notes")


def _blank(v) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _check_type(value: str) -> str:
    if value not in RESIGNATION_TYPES:
        raise ValidationError(f"resignation_type must be one of {', '.join(RESIGNATION_TYPES)}")
    return value


def _check_date(key: str, value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"{key} must be a date")


class ResignationLifecycle:
    """
    draft -> submitted -> approved|rejected, approved -> completed.
    Completion happens when the literal number of recorded signatures reaches
    REQUIRED_SIGNATURES; it is never requested directly.
    """

    REQUIRED = ("employee_id", "resignation_type", "resignation_date", "last_working_date", "reason")

    def __init__(self, session, store=None, tokens: Optional[SignatureTokenIssuer] = None,
                 now: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.store = store
        self.tokens = tokens or SignatureTokenIssuer(session, now=now)
        self.now = now

    # ---------- helpers ----------
    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StorageError("Database write failed", payload=str(e)) from e

    def _open_application_for(self, employee_id: int) -> Optional[ResignationApplication]:
        return (self.session.query(ResignationApplication)
                .filter(ResignationApplication.employee_id == employee_id)
                .filter(ResignationApplication.status.in_([s.value for s in OPEN_RESIGNATION_STATES]))
                .first())

    def signature_count(self, application_id: int) -> int:
        return (self.session.query(func.count(ResignationSignature.id))
                .filter(ResignationSignature.application_id == application_id)
                .scalar()) or 0

    def _maybe_complete(self, app: ResignationApplication) -> bool:
        if self.signature_count(app.id) < REQUIRED_SIGNATURES:
            return False
        if not RESIGNATION_LIFECYCLE.can(app.status, ResignationStatus.COMPLETED):
            return False
        app.status = RESIGNATION_LIFECYCLE.ensure(app.status, ResignationStatus.COMPLETED)
        log.info("Resignation %s completed", app.uuid)
        return True

    # ---------- reads ----------
    def get(self, application_uuid: str) -> ResignationApplication:
        app = self.session.query(ResignationApplication).filter_by(uuid=application_uuid).first()
        if app is None:
            raise NotFound("Resignation application not found")
        return app

    def query(self, status: Optional[str] = None, employee_id: Optional[int] = None):
        q = self.session.query(ResignationApplication)
        if status:
            q = q.filter(ResignationApplication.status == status)
        if employee_id:
            q = q.filter(ResignationApplication.employee_id == employee_id)
        return q.order_by(ResignationApplication.created_at.desc(), ResignationApplication.id.desc())

    def signatures(self, application_uuid: str) -> List[ResignationSignature]:
        app = self.get(application_uuid)
        return (self.session.query(ResignationSignature)
                .filter(ResignationSignature.application_id == app.id)
                .order_by(ResignationSignature.signed_at.asc())
                .all())

    # ---------- writes ----------
    def create(self, d: Dict[str, Any]) -> ResignationApplication:
        missing = [k for k in self.REQUIRED if _blank(d.get(k))]
        if missing:
            raise ValidationError(f"{', '.join(missing)} required")
        try:
            employee_id = int(d["employee_id"])
        except (TypeError, ValueError):
            raise ValidationError("employee_id must be an integer") from None

        if self.session.get(Employee, employee_id) is None:
            raise NotFound("Employee not found", code="EMPLOYEE_NOT_FOUND")
        if self._open_application_for(employee_id) is not None:
            raise Conflict("Employee already has an open resignation application",
                           code="DUPLICATE_OPEN_APPLICATION")

        app = ResignationApplication(
            uuid=str(uuidlib.uuid4()),
            employee_id=employee_id,
            resignation_type=_check_type(d["resignation_type"]),
            resignation_date=_check_date("resignation_date", d["resignation_date"]),
            last_working_date=_check_date("last_working_date", d["last_working_date"]),
            reason=d["reason"],
            handover_notes=d.get("handover_notes") or None,
            status=ResignationStatus.DRAFT.value,
        )
        self.session.add(app)
        self._commit()
        return app

    def update(self, application_uuid: str, d: Dict[str, Any]) -> ResignationApplication:
        """Partial update: only non-empty values are applied; omitted fields are kept."""
        app = self.get(application_uuid)
        RESIGNATION_LIFECYCLE.require(
            app.status, (ResignationStatus.DRAFT, ResignationStatus.SUBMITTED), "update")

        for key in _UPDATABLE:
            val = d.get(key)
            if _blank(val):
                continue
            if key == "resignation_type":
                val = _check_type(val)
            elif key in ("resignation_date", "last_working_date"):
                val = _check_date(key, val)
            setattr(app, key, val)

        target = d.get("status")
        if not _blank(target) and target != app.status:
            if target != ResignationStatus.SUBMITTED.value:
                raise InvalidState("Only 'submitted' can be set by update; use approve/reject")
            app.status = RESIGNATION_LIFECYCLE.ensure(app.status, target)

        self._commit()
        return app

    def submit(self, application_uuid: str) -> ResignationApplication:
        app = self.get(application_uuid)
        app.status = RESIGNATION_LIFECYCLE.ensure(app.status, ResignationStatus.SUBMITTED)
        self._commit()
        return app

    def delete(self, application_uuid: str) -> None:
        app = self.get(application_uuid)
        RESIGNATION_LIFECYCLE.require(app.status, (ResignationStatus.DRAFT,), "delete")
        self.session.query(ResignationSignToken).filter_by(application_id=app.id).delete()
        self.session.query(ResignationSignature).filter_by(application_id=app.id).delete()
        self.session.delete(app)
        self._commit()

    def approve(self, application_uuid: str, approver_id: Optional[int] = None,
                comments: Optional[str] = None) -> ResignationApplication:
        app = self.get(application_uuid)
        app.status = RESIGNATION_LIFECYCLE.ensure(app.status, ResignationStatus.APPROVED)
        app.approved_by = approver_id
        app.approved_at = self.now()
        app.approval_comments = comments

        emp = self.session.get(Employee, app.employee_id)
        if emp is not None:
            emp.status = "resigned"
            emp.leave_date = app.last_working_date

        # all parties may have signed before approval
        self._maybe_complete(app)
        self._commit()
        log.info("Resignation %s approved by %s", app.uuid, approver_id)
        return app

    def reject(self, application_uuid: str, comments: Optional[str] = None) -> ResignationApplication:
        app = self.get(application_uuid)
        app.status = RESIGNATION_LIFECYCLE.ensure(app.status, ResignationStatus.REJECTED)
        app.approval_comments = comments
        self._commit()
        return app

    def issue_token(self, application_uuid: str, role: str) -> Tuple[ResignationApplication, ResignationSignToken]:
        app = self.get(application_uuid)
        return app, self.tokens.issue(app, role)

    def resolve_signer(self, auth: SignerAuthorization) -> VerifiedSigner:
        """Turn either authorization path into one (application, role) before any signature write."""
        if isinstance(auth, TokenAuthorized):
            role = (auth.role or "").strip().lower()
            return VerifiedSigner(self.tokens.redeem(auth.token, role), role)
        if isinstance(auth, DirectAuthorized):
            role = ensure_role(auth.role)
            return VerifiedSigner(self.get(auth.application_uuid).id, role)
        raise TypeError(f"unsupported signer authorization: {auth!r}")

    def sign(self, auth: SignerAuthorization, signature_data: str,
             meta: Optional[Dict[str, Any]] = None) -> ResignationSignature:
        if _blank(signature_data):
            raise ValidationError("signature_data required")
        meta = meta or {}
        try:
            signer = self.resolve_signer(auth)
            app = self.session.get(ResignationApplication, signer.application_id)
            if app is None:
                raise NotFound("Resignation application not found")
            if RESIGNATION_LIFECYCLE.is_terminal(app.status):
                raise InvalidState(f"Cannot sign a resignation in '{app.status}' status")
            exists = (self.session.query(ResignationSignature.id)
                      .filter_by(application_id=app.id, signer_type=signer.role)
                      .first())
            if exists is not None:
                raise Conflict("Signature for this signer already exists", code="DUPLICATE_SIGNATURE")
            signed_at = self.now()
            digest, path = self.store.save(signature_data, signed_at)
        except APIError:
            # leaves a redeemed token unused again
            self.session.rollback()
            raise

        sig = ResignationSignature(
            application_id=app.id,
            signer_type=signer.role,
            signer_id=app.employee_id if signer.role == "employee" else None,
            signature_path=path,
            signature_hash=digest,
            ip_address=meta.get("ip_address"),
            user_agent=meta.get("user_agent"),
            device_info=meta.get("device_info"),
            signed_at=signed_at,
        )
        self.session.add(sig)
        try:
            self.session.flush()
            self._maybe_complete(app)
            self._commit()
        except IntegrityError:
            self.session.rollback()
            self.store.discard(path)
            raise Conflict("Signature for this signer already exists", code="DUPLICATE_SIGNATURE") from None
        except StorageError:
            self.store.discard(path)
            raise
        log.info("Resignation %s signed by %s", app.uuid, signer.role)
        return sig
