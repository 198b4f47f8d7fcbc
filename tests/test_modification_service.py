import pytest

from coffee_erp.constants import DepartmentName, ModificationStatus, WorkflowAction, Role
from coffee_erp.exceptions import InvalidTransition, PermissionDenied, WorkflowError
from coffee_erp.models import ModificationRequest
from coffee_erp.services.admin_service import DepartmentService
from coffee_erp.services.modification_service import ModificationService
from coffee_erp.services.payment_service import PaymentProcessor


@pytest.fixture
def payment(finance):
    return PaymentProcessor.create_payment(finance, {
        'supplier': 'Bugisu Arabica Ltd',
        'batch_number': 'B-0107',
        'amount': '800000',
    })


@pytest.fixture
def mod(payment, finance):
    return ModificationService.request_modification(
        payment, finance, DepartmentName.QUALITY, 'Quality Review Needed', 'Moisture reading looks off'
    )


@pytest.fixture
def quality(make_user):
    return make_user('grader', Role.STAFF, DepartmentName.QUALITY)


@pytest.fixture
def store(make_user):
    return make_user('storekeeper', Role.STAFF, DepartmentName.STORE)


class TestRequestModification:

    def test_creates_pending_request_and_trail(self, mod, payment):
        assert mod.status == ModificationStatus.PENDING
        assert mod.requested_by_department == DepartmentName.FINANCE
        assert mod.batch_number == 'B-0107'
        actions = [s.action for s in ModificationService.history(payment.id)]
        assert actions == [WorkflowAction.SUBMITTED, WorkflowAction.MODIFICATION_REQUESTED]

    def test_target_must_be_known(self, payment, finance):
        with pytest.raises(WorkflowError):
            ModificationService.request_modification(payment, finance, 'Marketing', 'Other')

    def test_target_must_differ(self, payment, finance):
        with pytest.raises(WorkflowError):
            ModificationService.request_modification(payment, finance, DepartmentName.FINANCE, 'Other')

    def test_target_department_is_notified(self, quality, payment, finance, mail_queue):
        ModificationService.request_modification(payment, finance, DepartmentName.QUALITY, 'Other')
        recipients = [c.args[1] for c in mail_queue.delay.call_args_list]
        assert recipients == [quality.email]


class TestComplete:

    def test_complete_is_idempotent(self, mod, quality):
        first = ModificationService.complete(mod.id, quality)
        stamp = first.completed_at
        second = ModificationService.complete(mod.id, quality)
        assert second.status == ModificationStatus.COMPLETED
        assert second.completed_at == stamp

    def test_only_target_department(self, mod, store):
        with pytest.raises(PermissionDenied):
            ModificationService.complete(mod.id, store)

    def test_outsider_cannot_complete_again(self, mod, quality, store):
        ModificationService.complete(mod.id, quality)
        with pytest.raises(PermissionDenied):
            ModificationService.complete(mod.id, store)

    def test_admin_may_complete(self, mod, admin):
        assert ModificationService.complete(mod.id, admin).completed_by == admin.display_name

    def test_cancelled_cannot_complete(self, mod, finance, quality):
        ModificationService.cancel(mod.id, finance)
        with pytest.raises(InvalidTransition):
            ModificationService.complete(mod.id, quality)


class TestForward:

    def test_forward_closes_source_and_opens_new(self, mod, quality):
        forwarded = ModificationService.forward(mod.id, quality, DepartmentName.STORE, 'Weight mismatch')
        assert mod.status == ModificationStatus.COMPLETED
        assert forwarded.status == ModificationStatus.PENDING
        assert forwarded.target_department == DepartmentName.STORE
        assert forwarded.requested_by_department == DepartmentName.QUALITY
        assert forwarded.comments == 'Forwarded from Quality: Quality Review Needed'
        assert ModificationService.pending_for(DepartmentName.STORE) == [forwarded]
        assert ModificationService.pending_for(DepartmentName.QUALITY) == []

    def test_forward_twice_returns_same_request(self, mod, quality):
        first = ModificationService.forward(mod.id, quality, DepartmentName.STORE, 'Weight mismatch')
        again = ModificationService.forward(mod.id, quality, DepartmentName.MILLING, 'Changed my mind')
        assert again.id == first.id
        assert ModificationRequest.query.count() == 2

    def test_outsider_cannot_fetch_forwarded_request(self, mod, quality, store, make_user):
        ModificationService.forward(mod.id, quality, DepartmentName.STORE, 'Weight mismatch')
        milling = make_user('miller', Role.STAFF, DepartmentName.MILLING)
        with pytest.raises(PermissionDenied):
            ModificationService.forward(mod.id, milling, DepartmentName.STORE, 'Weight mismatch')
        with pytest.raises(PermissionDenied):
            ModificationService.forward(mod.id, store, DepartmentName.STORE, 'Weight mismatch')

    def test_forward_to_same_department(self, mod, quality):
        with pytest.raises(WorkflowError):
            ModificationService.forward(mod.id, quality, DepartmentName.QUALITY, 'Loop')

    def test_forward_to_added_department(self, mod, quality):
        DepartmentService.add_department('Export')
        forwarded = ModificationService.forward(mod.id, quality, 'Export', 'Export grade query')
        assert forwarded.target_department == 'Export'

    def test_explicit_comments_kept(self, mod, quality):
        forwarded = ModificationService.forward(mod.id, quality, DepartmentName.STORE, 'Recount',
                                                comments='Please recount bags')
        assert forwarded.comments == 'Please recount bags'
