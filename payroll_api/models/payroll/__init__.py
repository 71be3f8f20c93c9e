# payroll_api/models/payroll/__init__.py
# Import order matters: templates first, then payroll documents (which reference them),
# then signatures / notifications.
from .template import PayrollTemplate
from .payroll import PayrollDocument, PayrollSignature
from .notification import PayrollNotification

__all__ = [
    "PayrollTemplate",
    "PayrollDocument", "PayrollSignature",
    "PayrollNotification",
]
