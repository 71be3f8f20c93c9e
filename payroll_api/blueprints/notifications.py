from flask import Blueprint, current_app, request

from payroll_api.common.auth import admin_required
from payroll_api.common.http import ok
from payroll_api.common.paging import paginate
from payroll_api.extensions import db
from payroll_api.models.payroll import PayrollDocument, PayrollNotification
from payroll_api.services.notifier import PayrollNotifier
from payroll_api.services.payroll_service import PayrollLifecycle

bp = Blueprint("payroll_notifications", __name__, url_prefix="/api/v1/notifications")


def _row(x: PayrollNotification):
    return {
        "id": x.id,
        "payroll_id": x.payroll.uuid if x.payroll else None,
        "period": x.payroll.period if x.payroll else None,
        "type": x.type,
        "recipient": x.recipient,
        "status": x.status,
        "sent_at": x.sent_at.isoformat() if x.sent_at else None,
        "error_msg": x.error_msg,
        "created_at": x.created_at.isoformat() if x.created_at else None,
    }


@bp.get("")
@admin_required
def list_notifications():
    q = PayrollNotification.query
    status = request.args.get("status")
    if status:
        q = q.filter(PayrollNotification.status == status)
    payroll_id = request.args.get("payroll_id")
    if payroll_id:
        q = q.join(PayrollDocument, PayrollDocument.id == PayrollNotification.payroll_id) \
             .filter(PayrollDocument.uuid == payroll_id)
    rows, meta = paginate(q.order_by(PayrollNotification.created_at.desc(), PayrollNotification.id.desc()))
    return ok([_row(x) for x in rows], **meta)


@bp.post("/<int:notification_id>/resend")
@admin_required
def resend_notification(notification_id: int):
    svc = PayrollLifecycle(
        db.session,
        notifier=PayrollNotifier(db.session, sign_url=current_app.config["PAYROLL_VIEW_URL"]),
    )
    sent = svc.resend_notification(notification_id)
    n = db.session.get(PayrollNotification, notification_id)
    return ok({"sent": sent, "notification": _row(n)})
