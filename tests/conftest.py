import os
from datetime import date, datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.admin_user import AdminUser
from payroll_api.models.employee import Employee
from payroll_api.models.payroll import PayrollTemplate

# 1x1 transparent PNG
PNG_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


@pytest.fixture
def png():
    return PNG_DATA_URI


class Clock:
    """Settable clock for services that take ``now``."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 8, 1, 9, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, **kw):
        self.current = self.current + timedelta(**kw)


@pytest.fixture(scope="function")
def app(tmp_path):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app({
        "TESTING": True,
        "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
        "UPLOADS_ROOT": str(tmp_path / "uploads"),
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def admin(session):
    u = AdminUser(username="admin", is_active=True)
    u.set_password("secret")
    session.add(u)
    session.commit()
    return u


@pytest.fixture
def auth_headers(app, admin):
    token = create_access_token(identity=str(admin.id), additional_claims={"username": admin.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def employee(session):
    e = Employee(name="Li Wei", employee_no="E001", department="Finance",
                 position="Accountant", email="li.wei@example.com",
                 join_date=date(2020, 3, 1))
    session.add(e)
    session.commit()
    return e


@pytest.fixture
def template(session):
    t = PayrollTemplate(name="Standard", description="Monthly statement",
                        fields='{"basic_salary": {"name": "Basic salary", "type": "number"}}')
    session.add(t)
    session.commit()
    return t
