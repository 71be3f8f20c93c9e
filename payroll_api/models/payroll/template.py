import json
from datetime import datetime
from payroll_api.extensions import db

class PayrollTemplate(db.Model):
    __tablename__ = "payroll_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255))
    # JSON text: {"basic_salary": {"name": "Basic salary", "type": "number"}, ...}
    # advisory only, never enforced against payroll data
    fields = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def fields_json(self):
        if not self.fields:
            return {}
        try:
            return json.loads(self.fields)
        except ValueError:
            return {}
