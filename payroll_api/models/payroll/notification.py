from datetime import datetime
from payroll_api.extensions import db

class PayrollNotification(db.Model):
    __tablename__ = "payroll_notifications"

    id = db.Column(db.Integer, primary_key=True)
    payroll_id = db.Column(db.Integer, db.ForeignKey("payrolls.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, default="email")      # email|sms
    recipient = db.Column(db.String(255))
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending|sent|failed
    sent_at = db.Column(db.DateTime)
    error_msg = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    payroll = db.relationship("PayrollDocument", lazy="joined")
