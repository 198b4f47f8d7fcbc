class RequestStatus:
    """Raw status stored on an approval request."""
    PENDING = 'Pending'
    FINANCE_APPROVED = 'Finance Approved'
    ADMIN1_APPROVED = 'Admin Approved'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'

    TERMINAL = (APPROVED, REJECTED)


class ApprovalStage:
    """Approval chain, in order."""
    FINANCE = 'finance'
    ADMIN1 = 'admin1'
    ADMIN2 = 'admin2'

    ORDER = (FINANCE, ADMIN1, ADMIN2)

    LABELS = {
        FINANCE: 'Finance Approval',
        ADMIN1: 'Admin Approval',
        ADMIN2: 'Second Admin Approval',
    }


class DisplayStatus:
    """Labels shown on dashboards, derived from the approval flags."""
    PENDING_FINANCE = 'Pending Finance'
    NEEDS_ADMIN = 'Needs Admin'
    FULLY_APPROVED = 'Fully Approved'
    REJECTED = 'Rejected'


class QueueBucket:
    PENDING = 'Pending'
    PROCESSING = 'Processing'
    REJECTED = 'Rejected'
    COMPLETED = 'Completed'


class RequestType:
    EXPENSE = 'Expense Request'
    MONEY = 'Money Request'
    SALARY_ADVANCE = 'Salary Advance'
    BANK_TRANSFER = 'Bank Transfer'
    REQUISITION = 'Requisition'

    ALL = (EXPENSE, MONEY, SALARY_ADVANCE, BANK_TRANSFER, REQUISITION)


class PaymentMethod:
    CASH = 'Cash'
    BANK = 'Bank'

    ALL = (CASH, BANK)


class PaymentStatus:
    PENDING = 'Pending'
    PARTIAL = 'Partial'
    PROCESSING = 'Processing'
    PAID = 'Paid'


class TransactionType:
    DEPOSIT = 'DEPOSIT'
    EXPENSE = 'EXPENSE'
    PAYMENT = 'PAYMENT'


class TransactionStatus:
    PENDING = 'pending'
    CONFIRMED = 'confirmed'


class ModificationStatus:
    PENDING = 'pending'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class WorkflowAction:
    SUBMITTED = 'submitted'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    MODIFICATION_REQUESTED = 'modification_requested'
    MODIFIED = 'modified'


class DepartmentName:
    STORE = 'Store'
    QUALITY = 'Quality'
    FINANCE = 'Finance'
    PROCUREMENT = 'Procurement'
    MILLING = 'Milling'
    SALES = 'Sales'
    FIELD_OPERATIONS = 'Field Operations'
    ADMIN = 'Admin'

    ALL = (STORE, QUALITY, FINANCE, PROCUREMENT, MILLING, SALES, FIELD_OPERATIONS, ADMIN)


class Role:
    """User roles for permissions."""
    ADMIN = 'admin'
    FINANCE = 'finance'
    STAFF = 'staff'

    ALL = (ADMIN, FINANCE, STAFF)


# Role allowed to sign off each approval stage
STAGE_ROLES = {
    ApprovalStage.FINANCE: Role.FINANCE,
    ApprovalStage.ADMIN1: Role.ADMIN,
    ApprovalStage.ADMIN2: Role.ADMIN,
}

MODIFICATION_REASONS = {
    'price_adjustment': 'Price Adjustment Required',
    'quality_review': 'Quality Review Needed',
    'documentation_update': 'Documentation Update',
    'supplier_change': 'Supplier Change Required',
    'quantity_adjustment': 'Quantity Adjustment',
    'other': 'Other',
}
