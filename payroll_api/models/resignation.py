from datetime import datetime
from payroll_api.extensions import db


class ResignationApplication(db.Model):
    __tablename__ = "resignation_applications"

    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(db.String(36), unique=True, nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)

    resignation_type = db.Column(db.String(20), nullable=False)  # voluntary|dismissal|contract_expiry
    resignation_date = db.Column(db.Date, nullable=False)
    last_working_date = db.Column(db.Date, nullable=False)
    reason = db.Column(db.Text)
    handover_notes = db.Column(db.Text)

    status = db.Column(db.String(16), nullable=False, default="draft")  # draft|submitted|approved|rejected|completed
    approved_by = db.Column(db.Integer, db.ForeignKey("admin_users.id", ondelete="SET NULL"))
    approved_at = db.Column(db.DateTime)
    approval_comments = db.Column(db.Text)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
    signatures = db.relationship(
        "ResignationSignature",
        back_populates="application",
        order_by="ResignationSignature.signed_at",
    )


class ResignationSignature(db.Model):
    __tablename__ = "resignation_signatures"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey("resignation_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    signer_type = db.Column(db.String(16), nullable=False)   # employee|hr|manager
    signer_id = db.Column(db.Integer)

    signature_path = db.Column(db.String(255), nullable=False)
    signature_hash = db.Column(db.String(64), nullable=False)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(512))
    device_info = db.Column(db.String(120))
    signed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("application_id", "signer_type", name="uq_resignation_sig_app_role"),
    )

    application = db.relationship("ResignationApplication", back_populates="signatures")


class ResignationSignToken(db.Model):
    __tablename__ = "resignation_sign_tokens"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey("resignation_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    signer_type = db.Column(db.String(16), nullable=False)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    used = db.Column(db.Boolean, nullable=False, default=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    application = db.relationship("ResignationApplication")


class ResignationReport(db.Model):
    __tablename__ = "resignation_reports"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey("resignation_applications.id", ondelete="CASCADE"), nullable=False, index=True)

    report_content = db.Column(db.Text)          # rendered HTML
    work_summary = db.Column(db.Text)
    unfinished_tasks = db.Column(db.Text)
    company_property_returned = db.Column(db.Boolean, nullable=False, default=False)
    financial_settlement = db.Column(db.Boolean, nullable=False, default=False)

    generated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    application = db.relationship("ResignationApplication", lazy="joined")
