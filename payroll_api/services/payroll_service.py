from __future__ import annotations

import json
import logging
import uuid as uuidlib
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from payroll_api.common.errors import Conflict, InvalidState, NotFound, StorageError, ValidationError
from payroll_api.models.employee import Employee
from payroll_api.models.payroll import (
    PayrollDocument, PayrollNotification, PayrollSignature, PayrollTemplate,
)
from .lifecycle import PAYROLL_LIFECYCLE, PayrollStatus
from .payroll_calculator import PayrollCalculator

log = logging.getLogger(__name__)


def _units(d: Dict[str, Any], key: str) -> float:
    val = d.get(key)
    if val in (None, ""):
        return 0.0
    if isinstance(val, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        return float(val)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number") from None


def _int_field(d: Dict[str, Any], key: str) -> int:
    try:
        return int(d[key])
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer") from None


class PayrollLifecycle:
    """
    Draft -> published -> signed lifecycle of payroll documents.

    Collaborators are injected: ``session`` (SQLAlchemy session), ``calculator``,
    ``store`` (SignatureStore) and ``notifier`` (PayrollNotifier, optional).
    Every public method either completes and commits or raises an APIError.
    """

    REQUIRED = ("employee_id", "period", "template_id", "payroll_data")

    def __init__(self, session, store=None, calculator: Optional[PayrollCalculator] = None,
                 notifier=None, now: Callable[[], datetime] = datetime.utcnow):
        self.session = session
        self.store = store
        self.calculator = calculator or PayrollCalculator()
        self.notifier = notifier
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

    def _signature_for(self, payroll_id: int) -> Optional[PayrollSignature]:
        return self.session.query(PayrollSignature).filter_by(payroll_id=payroll_id).first()

    def _validate(self, d: Dict[str, Any]) -> Dict[str, Any]:
        missing = [k for k in self.REQUIRED if d.get(k) in (None, "")]
        if missing:
            raise ValidationError(f"{', '.join(missing)} required")
        data = d["payroll_data"]
        if not isinstance(data, dict):
            raise ValidationError("payroll_data must be an object")
        return {
            "employee_id": _int_field(d, "employee_id"),
            "template_id": _int_field(d, "template_id"),
            "period": str(d["period"]).strip(),
            "payroll_data": data,
            "work_days": _units(d, "work_days"),
            "month_days": _units(d, "month_days"),
            "is_prorated": bool(d.get("is_prorated", False)),
        }

    def compute_totals(self, data: Dict[str, Any], work_days: float, month_days: float,
                       is_prorated: bool) -> Dict[str, Any]:
        """
        Totals for a payroll. ``original_gross`` is always the full-month figure,
        even when it equals ``total_gross``.
        """
        if is_prorated and work_days > 0 and month_days > 0:
            gross, net = self.calculator.compute_prorated(data, work_days / month_days)
        else:
            gross, net = self.calculator.compute_full(data)
            if work_days == 0:
                work_days = month_days
        original_gross, _ = self.calculator.compute_full(data)
        return {
            "work_days": work_days,
            "month_days": month_days,
            "is_prorated": is_prorated,
            "payroll_data": json.dumps(data, ensure_ascii=False),
            "original_gross": original_gross,
            "total_gross": gross,
            "total_net": net,
        }

    def _ensure_refs(self, employee_id: int, template_id: int):
        if self.session.get(Employee, employee_id) is None:
            raise NotFound("Employee not found", code="EMPLOYEE_NOT_FOUND")
        if self.session.get(PayrollTemplate, template_id) is None:
            raise NotFound("Template not found")

    # ---------- reads ----------
    def get(self, payroll_uuid: str) -> PayrollDocument:
        doc = self.session.query(PayrollDocument).filter_by(uuid=payroll_uuid).first()
        if doc is None:
            raise NotFound("Payroll not found")
        return doc

    def effective_status(self, doc: PayrollDocument) -> str:
        """A payroll with a recorded signature reads as signed even if the stored status lags."""
        if doc.status == PayrollStatus.PUBLISHED.value and self._signature_for(doc.id) is not None:
            return PayrollStatus.SIGNED.value
        return doc.status

    def _status_clause(self, status: str):
        """Filter on the status as effective_status reports it."""
        signed = PayrollDocument.signature.has()
        published = PayrollDocument.status == PayrollStatus.PUBLISHED.value
        if status == PayrollStatus.PUBLISHED.value:
            return and_(published, ~signed)
        if status == PayrollStatus.SIGNED.value:
            return or_(PayrollDocument.status == status, and_(published, signed))
        return PayrollDocument.status == status

    def query(self, status: Optional[str] = None, period: Optional[str] = None,
              employee_id: Optional[int] = None):
        q = self.session.query(PayrollDocument)
        if status:
            q = q.filter(self._status_clause(status))
        if period:
            q = q.filter(PayrollDocument.period == period)
        if employee_id:
            q = q.filter(PayrollDocument.employee_id == employee_id)
        return q.order_by(PayrollDocument.created_at.desc(), PayrollDocument.id.desc())

    def list_for_employee(self, employee_id: int, period: Optional[str] = None) -> List[PayrollDocument]:
        """Payrolls an employee may see: published or signed, newest period first."""
        q = (self.session.query(PayrollDocument)
             .filter(PayrollDocument.employee_id == employee_id)
             .filter(PayrollDocument.status.in_([PayrollStatus.PUBLISHED.value,
                                                 PayrollStatus.SIGNED.value])))
        if period:
            q = q.filter(PayrollDocument.period == period)
        return q.order_by(PayrollDocument.period.desc()).all()

    def get_signature(self, payroll_uuid: str) -> PayrollSignature:
        doc = self.get(payroll_uuid)
        sig = self._signature_for(doc.id)
        if sig is None:
            raise NotFound("Signature not found")
        return sig

    # ---------- writes ----------
    def create(self, d: Dict[str, Any]) -> PayrollDocument:
        v = self._validate(d)
        self._ensure_refs(v["employee_id"], v["template_id"])
        totals = self.compute_totals(v["payroll_data"], v["work_days"], v["month_days"], v["is_prorated"])
        doc = PayrollDocument(
            uuid=str(uuidlib.uuid4()),
            employee_id=v["employee_id"],
            template_id=v["template_id"],
            period=v["period"],
            status=PayrollStatus.DRAFT.value,
            **totals,
        )
        self.session.add(doc)
        self._commit()
        return doc

    def update(self, payroll_uuid: str, d: Dict[str, Any]) -> PayrollDocument:
        doc = self.get(payroll_uuid)
        PAYROLL_LIFECYCLE.require(doc.status, (PayrollStatus.DRAFT,), "update")
        v = self._validate(d)
        if v["employee_id"] != doc.employee_id or v["template_id"] != doc.template_id:
            self._ensure_refs(v["employee_id"], v["template_id"])
        totals = self.compute_totals(v["payroll_data"], v["work_days"], v["month_days"], v["is_prorated"])
        doc.employee_id = v["employee_id"]
        doc.template_id = v["template_id"]
        doc.period = v["period"]
        for k, val in totals.items():
            setattr(doc, k, val)
        self._commit()
        return doc

    def delete(self, payroll_uuid: str) -> None:
        doc = self.get(payroll_uuid)
        PAYROLL_LIFECYCLE.require(doc.status, (PayrollStatus.DRAFT,), "delete")
        self.session.delete(doc)
        self._commit()

    def publish(self, payroll_uuids: Iterable[str], notify: bool = False) -> List[PayrollDocument]:
        uuids = [u for u in (payroll_uuids or []) if u]
        if not uuids:
            raise ValidationError("payroll_ids required")
        docs = (self.session.query(PayrollDocument)
                .filter(PayrollDocument.uuid.in_(uuids))
                .filter(PayrollDocument.status == PayrollStatus.DRAFT.value)
                .all())
        if not docs:
            raise InvalidState("No valid draft payrolls found", code="NOTHING_TO_PUBLISH")

        now = self.now()
        for doc in docs:
            doc.status = PAYROLL_LIFECYCLE.ensure(doc.status, PayrollStatus.PUBLISHED)
            doc.published_at = now
        self._commit()
        log.info("Published %d payroll(s)", len(docs))

        if notify:
            self._notify(docs)
        return docs

    def _notify(self, docs: List[PayrollDocument]) -> None:
        if self.notifier is None:
            log.warning("notify requested but no notifier configured")
            return
        for doc in docs:
            try:
                self.notifier.send(doc)
            except Exception:
                # publication is already committed; a failed notice is only logged
                self.session.rollback()
                log.exception("Notification for payroll %s failed", doc.uuid)

    def resend_notification(self, notification_id: int) -> bool:
        n = self.session.get(PayrollNotification, notification_id)
        if n is None:
            raise NotFound("Notification not found")
        if self.notifier is None:
            raise InvalidState("Notifications are not configured")
        return self.notifier.send(n.payroll, notification=n)

    def sign(self, payroll_uuid: str, signature_data: str,
             meta: Optional[Dict[str, Any]] = None) -> PayrollSignature:
        if not payroll_uuid or not signature_data:
            raise ValidationError("payroll_id and signature_data required")
        doc = self.session.query(PayrollDocument).filter_by(uuid=payroll_uuid).first()
        if doc is None:
            raise NotFound("Payroll not found or not published")
        if doc.status == PayrollStatus.SIGNED.value or self._signature_for(doc.id) is not None:
            raise Conflict("Payroll already signed", code="ALREADY_SIGNED")
        if doc.status != PayrollStatus.PUBLISHED.value:
            raise NotFound("Payroll not found or not published")
        new_status = PAYROLL_LIFECYCLE.ensure(doc.status, PayrollStatus.SIGNED)

        meta = meta or {}
        signed_at = self.now()
        digest, path = self.store.save(signature_data, signed_at)
        sig = PayrollSignature(
            payroll_id=doc.id,
            signature_path=path,
            signature_hash=digest,
            ip_address=meta.get("ip_address"),
            user_agent=meta.get("user_agent"),
            device_info=meta.get("device_info"),
            signed_at=signed_at,
        )
        self.session.add(sig)
        # signature row and status flip land in the same commit
        doc.status = new_status
        try:
            self._commit()
        except IntegrityError:
            self.store.discard(path)
            raise Conflict("Payroll already signed", code="ALREADY_SIGNED") from None
        except StorageError:
            self.store.discard(path)
            raise
        log.info("Payroll %s signed", doc.uuid)
        return sig
