import json
from datetime import datetime
from payroll_api.extensions import db


class PayrollDocument(db.Model):
    __tablename__ = "payrolls"

    id = db.Column(db.Integer, primary_key=True)              # internal, never exposed
    uuid = db.Column(db.String(36), unique=True, nullable=False, index=True)

    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey("payroll_templates.id", ondelete="RESTRICT"), nullable=False, index=True)
    period = db.Column(db.String(20), nullable=False, index=True)   # e.g. 2024-08

    work_days  = db.Column(db.Float, nullable=False, default=0)     # days actually worked
    month_days = db.Column(db.Float, nullable=False, default=0)     # days in the period
    is_prorated = db.Column(db.Boolean, nullable=False, default=False)

    payroll_data = db.Column(db.Text, nullable=False, default="{}")  # component name -> amount
    original_gross = db.Column(db.Numeric(14, 2), nullable=False, default=0)  # always full-month
    total_gross    = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_net      = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="draft")  # draft|published|signed
    published_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
    template = db.relationship("PayrollTemplate", lazy="joined")
    signature = db.relationship("PayrollSignature", uselist=False, back_populates="payroll")

    @property
    def components(self) -> dict:
        try:
            data = json.loads(self.payroll_data or "{}")
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


class PayrollSignature(db.Model):
    __tablename__ = "payroll_signatures"

    id = db.Column(db.Integer, primary_key=True)
    # one signature per payroll, enforced here as well as in the service
    payroll_id = db.Column(db.Integer, db.ForeignKey("payrolls.id", ondelete="RESTRICT"), nullable=False, unique=True)

    signature_path = db.Column(db.String(255), nullable=False)   # stored artifact, not the raw payload
    signature_hash = db.Column(db.String(64), nullable=False)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(512))
    device_info = db.Column(db.String(120))
    signed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    payroll = db.relationship("PayrollDocument", back_populates="signature")
