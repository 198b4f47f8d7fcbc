"""
End-to-end checks through the JSON API using the Flask test client.
"""
import io
from unittest.mock import MagicMock

from coffee_erp.constants import DepartmentName, DisplayStatus, PaymentStatus
from coffee_erp.services.s3_service import S3Service
from coffee_erp.services.separation_of_duties import OWN_REQUEST


def create_request(client, amount='400000', **extra):
    body = {'type': 'Expense Request', 'title': 'Tarpaulins for drying yard', 'amount': amount}
    body.update(extra)
    return client.post('/requests', json=body)


class TestAuth:

    def test_login_rejects_bad_password(self, client, staff):
        resp = client.post('/auth/login', json={'email': staff.email, 'password': 'wrong-password'})
        assert resp.status_code == 401

    def test_login_validates_fields(self, client):
        resp = client.post('/auth/login', json={'email': 'not-an-email'})
        assert resp.status_code == 400
        assert 'password' in resp.get_json()['fields']

    def test_anonymous_gets_401(self, client):
        assert client.get('/dashboard').status_code == 401


class TestRequestsApi:

    def test_full_approval_over_http(self, login, staff, finance, admin):
        client = login(staff)
        resp = create_request(client)
        assert resp.status_code == 201
        req = resp.get_json()
        assert req['display_status'] == DisplayStatus.PENDING_FINANCE
        assert req['amount'] == '400000'

        elig = client.get(f"/requests/{req['id']}/eligibility").get_json()
        assert elig == {'can_approve': False, 'reason': OWN_REQUEST}

        client = login(finance)
        assert client.get(f"/requests/{req['id']}/eligibility").get_json()['can_approve'] is True
        resp = client.post(f"/requests/{req['id']}/approve", json={'comments': 'Budgeted'})
        assert resp.status_code == 200
        assert resp.get_json()['display_status'] == DisplayStatus.NEEDS_ADMIN

        # finance cannot take the admin stage
        resp = client.post(f"/requests/{req['id']}/approve", json={})
        assert resp.status_code == 403

        client = login(admin)
        dashboard = client.get('/dashboard').get_json()
        assert dashboard['action_required'] == [req['id']]

        resp = client.post(f"/requests/{req['id']}/approve", json={'stage': 'admin1'})
        assert resp.get_json()['display_status'] == DisplayStatus.FULLY_APPROVED

        detail = client.get(f"/requests/{req['id']}").get_json()
        assert [a['action'] for a in detail['audit']] == ['SUBMITTED', 'APPROVED_FINANCE', 'APPROVED_ADMIN1']

    def test_self_approval_is_forbidden(self, login, finance, finance2):
        client = login(finance)
        req = create_request(client).get_json()
        resp = client.post(f"/requests/{req['id']}/approve", json={})
        assert resp.status_code == 403
        assert resp.get_json()['error'] == 'SeparationOfDutiesViolation'

    def test_bad_amount(self, login, staff):
        resp = create_request(login(staff), amount='1000.5')
        assert resp.status_code == 422
        assert resp.get_json()['error'] == 'InvalidAmount'

    def test_amount_beyond_range(self, login, staff):
        for amount in ('1e30', '1000000000000000'):
            resp = create_request(login(staff), amount=amount)
            assert resp.status_code == 422
            assert resp.get_json()['error'] == 'InvalidAmount'

    def test_missing_title(self, login, staff):
        resp = login(staff).post('/requests', json={'amount': '1000'})
        assert resp.status_code == 400
        assert 'title' in resp.get_json()['fields']

    def test_reject_requires_reason(self, login, staff, finance):
        req = create_request(login(staff)).get_json()
        client = login(finance)
        assert client.post(f"/requests/{req['id']}/reject", json={}).status_code == 400
        resp = client.post(f"/requests/{req['id']}/reject", json={'reason': 'Over budget'})
        assert resp.get_json()['display_status'] == DisplayStatus.REJECTED
        assert client.post(f"/requests/{req['id']}/approve", json={}).status_code == 409

    def test_unknown_request(self, login, admin):
        assert login(admin).get('/requests/404').status_code == 404

    def test_staff_cannot_view_others(self, login, staff, make_user):
        req = create_request(login(staff)).get_json()
        other = make_user('store_keeper', department=DepartmentName.STORE)
        assert login(other).get(f"/requests/{req['id']}").status_code == 403


class TestFinanceApi:

    def fund(self, client, amount):
        txn = client.post('/finance/deposits', json={'department': 'Finance', 'amount': amount}).get_json()
        client.post(f"/finance/deposits/{txn['id']}/confirm")

    def test_balance_and_deposit(self, login, finance):
        client = login(finance)
        self.fund(client, '750000')
        resp = client.get('/finance/balance?department=Finance')
        assert resp.get_json()['balance'] == '750000.00'

    def test_insufficient_funds_response(self, login, finance):
        client = login(finance)
        self.fund(client, '100000')
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '250000'}).get_json()

        resp = client.post(f"/finance/payments/{payment['id']}/process", json={'method': 'Cash'})
        assert resp.status_code == 422
        body = resp.get_json()
        assert body['error'] == 'InsufficientFunds'
        assert body['available'] == '100000.00'
        assert body['required'] == '250000.00'
        assert 'Available: UGX 100,000' in body['message']

        resp = client.get('/finance/balance?department=Finance')
        assert resp.get_json()['balance'] == '100000.00'

    def test_bank_payment_over_http(self, login, finance, admin):
        client = login(finance)
        self.fund(client, '900000')
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '600000'}).get_json()
        resp = client.post(f"/finance/payments/{payment['id']}/process", json={'method': 'Bank'})
        body = resp.get_json()
        assert body['payment']['status'] == PaymentStatus.PROCESSING
        assert body['approval_request']['type'] == 'Bank Transfer'
        assert body['approval_request']['display_status'] == DisplayStatus.NEEDS_ADMIN

        client = login(admin)
        resp = client.post(f"/requests/{body['approval_request']['id']}/approve", json={})
        assert resp.get_json()['display_status'] == DisplayStatus.FULLY_APPROVED

    def test_staff_cannot_process(self, login, staff, finance):
        client = login(staff)
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '1000'}).get_json()
        resp = client.post(f"/finance/payments/{payment['id']}/process", json={'method': 'Cash'})
        assert resp.status_code == 403

    def test_ledger_csv(self, login, finance):
        client = login(finance)
        self.fund(client, '500000')
        client.post('/finance/expenses', json={
            'department': 'Finance', 'amount': '20000', 'category': 'Fuel', 'description': 'Generator'
        })
        resp = client.get('/finance/ledger.csv?department=Finance')
        assert resp.status_code == 200
        assert resp.mimetype == 'text/csv'
        lines = resp.get_data(as_text=True).strip().splitlines()
        assert lines[0].startswith('S.No,Date,Department,Type')
        assert len(lines) == 3

    def test_ledger_rejects_bad_dates(self, login, finance):
        assert login(finance).get('/finance/ledger.csv?start_date=yesterday').status_code == 400

    def test_payment_slip_pdf(self, login, finance):
        client = login(finance)
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '1000'}).get_json()
        resp = client.get(f"/finance/payments/{payment['id']}/slip")
        assert resp.status_code == 200
        assert resp.mimetype == 'application/pdf'
        assert resp.data.startswith(b'%PDF')

    def storage(self, monkeypatch):
        storage = MagicMock()
        storage.proof_key.side_effect = S3Service.proof_key
        storage.upload_file.side_effect = lambda file_obj, key: key
        storage.generate_presigned_url.return_value = 'https://bucket.example/signed'
        monkeypatch.setattr('coffee_erp.blueprints.finance.S3Service', lambda: storage)
        return storage

    def test_proof_upload(self, login, finance, monkeypatch):
        storage = self.storage(monkeypatch)

        client = login(finance)
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '1000'}).get_json()
        resp = client.post(
            f"/finance/payments/{payment['id']}/proof",
            data={'proof': (io.BytesIO(b'%PDF-1.4 receipt'), 'receipt.pdf')},
            content_type='multipart/form-data',
        )
        assert resp.status_code == 200
        key = storage.upload_file.call_args.args[1]
        assert key == f"payments/{payment['reference']}/receipt.pdf"

    def test_proof_link(self, login, finance, admin, monkeypatch):
        storage = self.storage(monkeypatch)
        client = login(finance)
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '1000'}).get_json()
        assert client.get(f"/finance/payments/{payment['id']}/proof").status_code == 404

        client.post(
            f"/finance/payments/{payment['id']}/proof",
            data={'proof': (io.BytesIO(b'%PDF-1.4 receipt'), 'bank slip.pdf')},
            content_type='multipart/form-data',
        )
        resp = login(admin).get(f"/finance/payments/{payment['id']}/proof")
        assert resp.get_json() == {'url': 'https://bucket.example/signed'}
        key = storage.generate_presigned_url.call_args.args[0]
        assert key == f"payments/{payment['reference']}/bank_slip.pdf"
        assert storage.generate_presigned_url.call_args.kwargs == {'expiration': 3600}


class TestModificationsApi:

    def test_request_forward_complete(self, login, finance, make_user):
        quality = make_user('grader', department=DepartmentName.QUALITY)
        store = make_user('storekeeper', department=DepartmentName.STORE)

        client = login(finance)
        payment = client.post('/finance/payments', json={'supplier': 'Mbale Farmers', 'amount': '1000'}).get_json()
        resp = client.post('/modifications', json={
            'payment_id': payment['id'], 'target_department': 'Quality', 'reason': 'quality_review'
        })
        assert resp.status_code == 201
        mod = resp.get_json()
        assert mod['reason'] == 'Quality Review Needed'

        client = login(quality)
        assert [m['id'] for m in client.get('/modifications').get_json()] == [mod['id']]
        fwd = client.post(f"/modifications/{mod['id']}/forward",
                          json={'target_department': 'Store', 'reason': 'Bag count'}).get_json()
        again = client.post(f"/modifications/{mod['id']}/forward",
                            json={'target_department': 'Store', 'reason': 'Bag count'}).get_json()
        assert again['id'] == fwd['id']

        client = login(store)
        first = client.post(f"/modifications/{fwd['id']}/complete").get_json()
        second = client.post(f"/modifications/{fwd['id']}/complete").get_json()
        assert first['status'] == second['status'] == 'completed'
        assert first['completed_at'] == second['completed_at']


class TestAdminApi:

    def test_stats_require_admin(self, login, staff):
        assert login(staff).get('/admin/stats').status_code == 403

    def test_stats(self, login, staff, admin):
        create_request(login(staff))
        stats = login(admin).get('/admin/stats').get_json()
        assert stats['total'] == 1
        assert stats['bottlenecks'] == {DisplayStatus.PENDING_FINANCE: 1}

    def test_create_user_and_department(self, login, admin):
        client = login(admin)
        resp = client.post('/admin/users', json={
            'name': 'Sarah', 'email': 'Sarah@GreatPearlCoffee.com', 'role': 'finance', 'dept': 'Finance'
        })
        assert resp.status_code == 201
        assert resp.get_json()['email'] == 'sarah@greatpearlcoffee.com'

        resp = client.post('/admin/departments', json={'name': 'Export'})
        assert resp.status_code == 201
        assert 'Export' in client.get('/admin/departments').get_json()
