from datetime import datetime
from payroll_api.extensions import db

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)

    name        = db.Column(db.String(120), nullable=False)
    employee_no = db.Column(db.String(32), unique=True, nullable=False)
    department  = db.Column(db.String(120), nullable=True)
    position    = db.Column(db.String(120), nullable=True)
    email       = db.Column(db.String(255), nullable=True)
    phone       = db.Column(db.String(32), nullable=True)

    status = db.Column(db.String(16), default="active", nullable=False)  # active/inactive/resigned
    join_date  = db.Column(db.Date, nullable=True)
    leave_date = db.Column(db.Date, nullable=True)
    # soft delete only; rows referenced by payrolls must survive for audit
    deleted_at = db.Column(db.DateTime, nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def soft_delete(self, when: datetime | None = None):
        when = when or datetime.utcnow()
        self.status = "resigned"
        self.leave_date = when.date()
        self.deleted_at = when
