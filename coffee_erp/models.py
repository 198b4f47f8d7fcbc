from datetime import datetime
from decimal import Decimal
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from coffee_erp.extensions import db
from coffee_erp.money import currency_places
from coffee_erp.services.status_classifier import classify, queue_bucket
from coffee_erp.constants import (
    RequestStatus, PaymentStatus, TransactionStatus, ModificationStatus, Role
)

MONEY = db.Numeric(18, 2)


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(20), nullable=False, default=Role.STAFF)
    department = db.Column(db.String(50))

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def display_name(self):
        return self.username or self.email

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'department': self.department,
        }


class Department(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)


class ApprovalRequest(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(20), unique=True, nullable=False)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    department = db.Column(db.String(50), nullable=False)
    priority = db.Column(db.String(20), default='Medium')
    amount = db.Column(MONEY, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='UGX')
    status = db.Column(db.String(30), nullable=False, default=RequestStatus.PENDING)
    requires_three_approvals = db.Column(db.Boolean, default=False, nullable=False)

    requested_by_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    requested_by = db.relationship('User', foreign_keys=[requested_by_id])

    # Stage sign-offs
    finance_approved_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    finance_approved_at = db.Column(db.DateTime)
    admin_approved_1_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    admin_approved_1_at = db.Column(db.DateTime)
    admin_approved_2_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    admin_approved_2_at = db.Column(db.DateTime)

    finance_approved_by = db.relationship('User', foreign_keys=[finance_approved_by_id])
    admin_approved_1_by = db.relationship('User', foreign_keys=[admin_approved_1_by_id])
    admin_approved_2_by = db.relationship('User', foreign_keys=[admin_approved_2_by_id])

    # Rejection
    rejected_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    rejected_by = db.relationship('User', foreign_keys=[rejected_by_id])
    rejected_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    rejection_comments = db.Column(db.Text)

    # Bank transfers point back at the payment they settle
    payment_record_id = db.Column(db.Integer, db.ForeignKey('payment_record.id'))
    payment_record = db.relationship('PaymentRecord', foreign_keys=[payment_record_id])

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    audit_logs = db.relationship('AuditLog', backref='approval_request', lazy=True,
                                 order_by='AuditLog.id')

    @property
    def finance_approved(self):
        return self.finance_approved_at is not None

    @property
    def admin_approved_1(self):
        return self.admin_approved_1_at is not None

    @property
    def admin_approved_2(self):
        return self.admin_approved_2_at is not None

    def to_dict(self):
        places = currency_places(self.currency)
        amount = Decimal(self.amount).quantize(Decimal(1).scaleb(-places))

        def _ts(value):
            return value.isoformat() if value else None

        def _who(user):
            return user.display_name if user else None

        return {
            'id': self.id,
            'reference': self.reference,
            'type': self.type,
            'title': self.title,
            'description': self.description,
            'department': self.department,
            'priority': self.priority,
            'amount': str(amount),
            'currency': self.currency,
            'status': self.status,
            'display_status': classify(self),
            'bucket': queue_bucket(self),
            'requires_three_approvals': self.requires_three_approvals,
            'requested_by': _who(self.requested_by),
            'finance_approved_by': _who(self.finance_approved_by),
            'finance_approved_at': _ts(self.finance_approved_at),
            'admin_approved_1_by': _who(self.admin_approved_1_by),
            'admin_approved_1_at': _ts(self.admin_approved_1_at),
            'admin_approved_2_by': _who(self.admin_approved_2_by),
            'admin_approved_2_at': _ts(self.admin_approved_2_at),
            'rejected_by': _who(self.rejected_by),
            'rejected_at': _ts(self.rejected_at),
            'rejection_reason': self.rejection_reason,
            'rejection_comments': self.rejection_comments,
            'payment_record_id': self.payment_record_id,
            'created_at': _ts(self.created_at),
        }


class CashBalance(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    department = db.Column(db.String(50), unique=True, nullable=False)
    current_balance = db.Column(MONEY, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default='UGX')
    updated_by = db.Column(db.String(120))
    last_updated = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CashTransaction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    department = db.Column(db.String(50), nullable=False)
    transaction_type = db.Column(db.String(20), nullable=False)
    # Signed: deposits positive, expenses and payments negative
    amount = db.Column(MONEY, nullable=False)
    balance_after = db.Column(MONEY)
    reference = db.Column(db.String(50))
    notes = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=TransactionStatus.PENDING)
    payment_record_id = db.Column(db.Integer, db.ForeignKey('payment_record.id'))
    created_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    confirmed_by = db.Column(db.String(120))
    confirmed_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'department': self.department,
            'transaction_type': self.transaction_type,
            'amount': str(self.amount),
            'balance_after': str(self.balance_after) if self.balance_after is not None else None,
            'reference': self.reference,
            'notes': self.notes,
            'status': self.status,
            'created_by': self.created_by,
            'confirmed_by': self.confirmed_by,
        }


class PaymentRecord(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(20), unique=True, nullable=False)
    supplier = db.Column(db.String(120), nullable=False)
    batch_number = db.Column(db.String(50))
    department = db.Column(db.String(50), nullable=False)
    amount = db.Column(MONEY, nullable=False)
    paid_amount = db.Column(MONEY, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default='UGX')
    method = db.Column(db.String(20))
    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING)
    notes = db.Column(db.Text)
    proof_key = db.Column(db.String(300))
    processed_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    transactions = db.relationship('CashTransaction', backref='payment_record', lazy=True)

    @property
    def outstanding(self):
        return Decimal(self.amount) - Decimal(self.paid_amount or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'reference': self.reference,
            'supplier': self.supplier,
            'batch_number': self.batch_number,
            'department': self.department,
            'amount': str(self.amount),
            'paid_amount': str(self.paid_amount),
            'outstanding': str(self.outstanding),
            'currency': self.currency,
            'method': self.method,
            'status': self.status,
            'processed_by': self.processed_by,
        }


class ModificationRequest(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    original_payment_id = db.Column(db.Integer, db.ForeignKey('payment_record.id'), nullable=False)
    original_payment = db.relationship('PaymentRecord', foreign_keys=[original_payment_id])
    batch_number = db.Column(db.String(50))
    requested_by = db.Column(db.String(120), nullable=False)
    requested_by_department = db.Column(db.String(50), nullable=False)
    target_department = db.Column(db.String(50), nullable=False)
    reason = db.Column(db.String(200), nullable=False)
    comments = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=ModificationStatus.PENDING)
    forwarded_to_id = db.Column(db.Integer, db.ForeignKey('modification_request.id'))
    forwarded_to = db.relationship('ModificationRequest', remote_side=[id], uselist=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime)
    completed_by = db.Column(db.String(120))

    def to_dict(self):
        return {
            'id': self.id,
            'original_payment_id': self.original_payment_id,
            'batch_number': self.batch_number,
            'requested_by': self.requested_by,
            'requested_by_department': self.requested_by_department,
            'target_department': self.target_department,
            'reason': self.reason,
            'comments': self.comments,
            'status': self.status,
            'forwarded_to_id': self.forwarded_to_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class WorkflowStep(db.Model):
    """Department hand-off trail for a payment."""
    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.Integer, db.ForeignKey('payment_record.id'), nullable=False)
    from_department = db.Column(db.String(50), nullable=False)
    to_department = db.Column(db.String(50), nullable=False)
    action = db.Column(db.String(30), nullable=False)
    reason = db.Column(db.String(200))
    comments = db.Column(db.Text)
    processed_by = db.Column(db.String(120))
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)


class AuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    approval_request_id = db.Column(db.Integer, db.ForeignKey('approval_request.id'))
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    action = db.Column(db.String(50), nullable=False)
    details = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)


class MockEmail(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    recipient = db.Column(db.String(120))
    subject = db.Column(db.String(200))
    body = db.Column(db.Text)
    link = db.Column(db.String(500))
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)
