import logging
from datetime import datetime
from typing import Optional

from payroll_api.models.payroll import PayrollDocument, PayrollNotification

log = logging.getLogger(__name__)


class LogSink:
    """Default delivery channel: writes the notice to the application log."""

    channel = "email"

    def deliver(self, recipient: str, subject: str, body: str) -> None:
        log.info("Sending payroll notification to %s: %s", recipient, subject)


class PayrollNotifier:
    """
    Records one PayrollNotification per delivery attempt.
    Delivery errors are captured on the row (status=failed); they never propagate
    to the publish request.
    """

    def __init__(self, session, sink=None, sign_url: str = "/web/payroll.html"):
        self.session = session
        self.sink = sink or LogSink()
        self.sign_url = sign_url

    def _message(self, payroll: PayrollDocument):
        subject = f"Payroll statement {payroll.period} is ready"
        body = (
            f"Your payroll statement for {payroll.period} has been published. "
            f"Review and sign it at {self.sign_url}?id={payroll.uuid}"
        )
        return subject, body

    def send(self, payroll: PayrollDocument, notification: Optional[PayrollNotification] = None) -> bool:
        recipient = payroll.employee.email if payroll.employee else None
        if notification is None:
            notification = PayrollNotification(
                payroll_id=payroll.id,
                type=self.sink.channel,
                recipient=recipient,
                status="pending",
            )
            self.session.add(notification)
        else:
            notification.recipient = recipient

        if not recipient:
            notification.status = "failed"
            notification.error_msg = "Employee has no email address"
            self.session.commit()
            return False

        subject, body = self._message(payroll)
        try:
            self.sink.deliver(recipient, subject, body)
        except Exception as e:
            log.warning("Payroll notification to %s failed: %s", recipient, e)
            notification.status = "failed"
            notification.error_msg = str(e)
            self.session.commit()
            return False

        notification.status = "sent"
        notification.sent_at = datetime.utcnow()
        notification.error_msg = None
        self.session.commit()
        return True
