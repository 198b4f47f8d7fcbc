"""
Shared fixtures: an in-memory app, a user factory and a mocked mail queue.
"""
from unittest.mock import MagicMock

import pytest

from config import TestConfig
from coffee_erp import create_app
from coffee_erp.extensions import db
from coffee_erp.models import User
from coffee_erp.constants import DepartmentName, Role
from coffee_erp.services.payment_service import CashLedger

PASSWORD = 'secret123'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def mail_queue(monkeypatch):
    """Replaces the Celery email task so no broker is needed."""
    task = MagicMock()
    monkeypatch.setattr('coffee_erp.utils.send_async_email', task)
    return task


@pytest.fixture
def make_user(app):
    def _make(username, role=Role.STAFF, department=DepartmentName.QUALITY):
        user = User(username=username, email=f"{username}@greatpearlcoffee.com",
                    role=role, department=department)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def staff(make_user):
    return make_user('quality_clerk')


@pytest.fixture
def finance(make_user):
    return make_user('cashier', Role.FINANCE, DepartmentName.FINANCE)


@pytest.fixture
def finance2(make_user):
    return make_user('accountant', Role.FINANCE, DepartmentName.FINANCE)


@pytest.fixture
def admin(make_user):
    return make_user('manager', Role.ADMIN, DepartmentName.ADMIN)


@pytest.fixture
def admin2(make_user):
    return make_user('director', Role.ADMIN, DepartmentName.ADMIN)


@pytest.fixture
def fund(finance):
    """Puts ``amount`` into a department float via a confirmed deposit."""
    def _fund(amount, department=DepartmentName.FINANCE):
        txn = CashLedger.record_deposit(department, amount, finance)
        CashLedger.confirm_deposit(txn.id, finance)
        return CashLedger.get_balance(department)
    return _fund


@pytest.fixture
def login(client):
    def _login(user):
        client.get('/auth/logout')
        resp = client.post('/auth/login', json={'email': user.email, 'password': PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return client
    return _login
