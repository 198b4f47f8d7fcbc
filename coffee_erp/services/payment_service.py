import logging
from datetime import datetime
from decimal import Decimal
from flask import current_app
from coffee_erp.extensions import db
from coffee_erp.models import CashBalance, CashTransaction, PaymentRecord, WorkflowStep
from coffee_erp.constants import (
    DepartmentName, PaymentMethod, PaymentStatus, RequestType,
    TransactionStatus, TransactionType, WorkflowAction
)
from coffee_erp.exceptions import (
    NotFound, InvalidAmount, InvalidTransition, InsufficientFunds, WorkflowError
)
from coffee_erp.money import parse_amount
from coffee_erp.utils import new_reference, get_pending_approvers, send_status_email

logger = logging.getLogger(__name__)


class CashLedger:
    """Per-department cash float and its transaction ledger."""

    @staticmethod
    def _balance_row(department, currency=None):
        row = CashBalance.query.filter_by(department=department).first()
        if row is None:
            row = CashBalance(
                department=department,
                current_balance=Decimal(0),
                currency=currency or current_app.config['DEFAULT_CURRENCY'],
            )
            db.session.add(row)
        return row

    @staticmethod
    def get_balance(department):
        """Current float; a department without a balance row has nothing."""
        row = CashBalance.query.filter_by(department=department).first()
        return Decimal(row.current_balance) if row else Decimal(0)

    @staticmethod
    def debit(department, amount, actor, transaction_type, reference=None, notes=None,
              payment=None, currency=None):
        """
        Takes ``amount`` out of the department float and records the
        transaction. Raises InsufficientFunds, leaving the balance untouched,
        when the float cannot cover it, and InvalidTransition when
        ``currency`` is not the currency the float is kept in.
        """
        row = CashLedger._balance_row(department, currency)
        if currency and row.currency != currency:
            raise InvalidTransition(
                f"The {department} float is kept in {row.currency}; it cannot pay {currency} amounts."
            )
        available = Decimal(row.current_balance or 0)
        if available < amount:
            logger.warning("Insufficient funds in %s: available %s, required %s",
                           department, available, amount)
            raise InsufficientFunds(available, amount, row.currency)

        new_balance = available - amount
        row.current_balance = new_balance
        row.updated_by = actor.display_name

        txn = CashTransaction(
            department=department,
            transaction_type=transaction_type,
            amount=-amount,
            balance_after=new_balance,
            reference=reference or new_reference(transaction_type[:3]),
            notes=notes,
            status=TransactionStatus.CONFIRMED,
            payment_record=payment,
            created_by=actor.display_name,
            confirmed_by=actor.display_name,
            confirmed_at=datetime.utcnow(),
        )
        db.session.add(txn)
        return txn

    @staticmethod
    def credit(department, amount, actor, transaction_type, reference=None, notes=None,
               payment=None):
        row = CashLedger._balance_row(department)
        new_balance = Decimal(row.current_balance or 0) + amount
        row.current_balance = new_balance
        row.updated_by = actor.display_name

        txn = CashTransaction(
            department=department,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=new_balance,
            reference=reference or new_reference(transaction_type[:3]),
            notes=notes,
            status=TransactionStatus.CONFIRMED,
            payment_record=payment,
            created_by=actor.display_name,
            confirmed_by=actor.display_name,
            confirmed_at=datetime.utcnow(),
        )
        db.session.add(txn)
        return txn

    @staticmethod
    def record_deposit(department, amount, actor, reference=None, notes=None):
        """Books a cash deposit awaiting Finance confirmation."""
        currency = current_app.config['DEFAULT_CURRENCY']
        amount = parse_amount(amount, currency)
        txn = CashTransaction(
            department=department,
            transaction_type=TransactionType.DEPOSIT,
            amount=amount,
            reference=reference or new_reference('DEP'),
            notes=notes,
            status=TransactionStatus.PENDING,
            created_by=actor.display_name,
        )
        db.session.add(txn)
        db.session.commit()
        logger.info("Deposit %s of %s recorded for %s", txn.reference, amount, department)
        return txn

    @staticmethod
    def confirm_deposit(transaction_id, actor):
        txn = db.session.get(CashTransaction, transaction_id)
        if not txn or txn.transaction_type != TransactionType.DEPOSIT:
            raise NotFound(f"Deposit {transaction_id} not found")
        if txn.status == TransactionStatus.CONFIRMED:
            return txn

        row = CashLedger._balance_row(txn.department)
        new_balance = Decimal(row.current_balance or 0) + Decimal(txn.amount)
        row.current_balance = new_balance
        row.updated_by = actor.display_name

        txn.balance_after = new_balance
        txn.status = TransactionStatus.CONFIRMED
        txn.confirmed_by = actor.display_name
        txn.confirmed_at = datetime.utcnow()
        db.session.commit()
        logger.info("Deposit %s confirmed by %s; %s balance now %s",
                    txn.reference, actor.email, txn.department, new_balance)
        return txn

    @staticmethod
    def record_expense(department, amount, actor, category, description, reference=None,
                       notes=None):
        currency = current_app.config['DEFAULT_CURRENCY']
        amount = parse_amount(amount, currency)
        if not category or not description:
            raise WorkflowError("Category and description are required")

        text = f"{category}: {description}"
        if notes:
            text = f"{text} - {notes}"
        txn = CashLedger.debit(department, amount, actor, TransactionType.EXPENSE,
                               reference=reference, notes=text)
        db.session.commit()
        logger.info("Expense %s of %s recorded for %s", txn.reference, amount, department)
        return txn

    @staticmethod
    def transactions(department=None, start=None, end=None):
        query = CashTransaction.query
        if department:
            query = query.filter(CashTransaction.department == department)
        if start:
            query = query.filter(CashTransaction.created_at >= start)
        if end:
            query = query.filter(CashTransaction.created_at <= end)
        return query.order_by(CashTransaction.created_at, CashTransaction.id).all()


class PaymentProcessor:

    @staticmethod
    def get_payment(payment_id):
        payment = db.session.get(PaymentRecord, payment_id)
        if not payment:
            raise NotFound(f"Payment {payment_id} not found")
        return payment

    @staticmethod
    def create_payment(actor, data):
        """Registers a payable (e.g. an assessed coffee lot) ready for Finance."""
        currency = data.get('currency') or current_app.config['DEFAULT_CURRENCY']
        supplier = (data.get('supplier') or '').strip()
        if not supplier:
            raise WorkflowError("Supplier is required")

        payment = PaymentRecord(
            reference=new_reference('PAY'),
            supplier=supplier,
            batch_number=data.get('batch_number'),
            department=data.get('department') or DepartmentName.FINANCE,
            amount=parse_amount(data.get('amount'), currency),
            paid_amount=Decimal(0),
            currency=currency,
            status=PaymentStatus.PENDING,
            notes=data.get('notes'),
        )
        db.session.add(payment)
        db.session.flush()
        db.session.add(WorkflowStep(
            payment_id=payment.id,
            from_department=data.get('from_department') or DepartmentName.QUALITY,
            to_department=payment.department,
            action=WorkflowAction.SUBMITTED,
            processed_by=actor.display_name,
        ))
        db.session.commit()
        return payment

    @staticmethod
    def process_payment(payment_id, method, actor, amount=None, notes=None):
        """
        Pays a payable out of its department float.

        Cash settles immediately (partial amounts allowed). Bank moves the
        payment to Processing and raises a Bank Transfer request that must
        clear the admin approval chain before the payment counts as Paid.
        """
        from coffee_erp.services.approval_service import ApprovalService

        payment = PaymentProcessor.get_payment(payment_id)
        if method not in PaymentMethod.ALL:
            raise WorkflowError(f"Unknown payment method: {method}")
        if payment.status in (PaymentStatus.PAID, PaymentStatus.PROCESSING):
            raise InvalidTransition(f"Payment {payment.reference} is already {payment.status}.")

        outstanding = payment.outstanding
        if amount is None or amount == '':
            amount = outstanding
        else:
            amount = parse_amount(amount, payment.currency)
        if amount > outstanding:
            raise InvalidAmount(f"Amount exceeds the outstanding balance of {outstanding}")
        if method == PaymentMethod.BANK and amount != outstanding:
            raise InvalidAmount("Bank transfers settle the full outstanding amount")

        CashLedger.debit(
            payment.department, amount, actor, TransactionType.PAYMENT,
            reference=payment.reference,
            notes=f"{method} payment to {payment.supplier} for batch {payment.batch_number or '-'}",
            payment=payment,
            currency=payment.currency,
        )

        payment.method = method
        payment.processed_by = actor.display_name
        if notes:
            payment.notes = notes

        bank_request = None
        if method == PaymentMethod.CASH:
            payment.paid_amount = Decimal(payment.paid_amount or 0) + amount
            payment.status = PaymentStatus.PAID if payment.outstanding <= 0 else PaymentStatus.PARTIAL
        else:
            payment.status = PaymentStatus.PROCESSING
            bank_request = ApprovalService.build_request(actor, {
                'type': RequestType.BANK_TRANSFER,
                'title': f"Coffee Payment - {payment.supplier}",
                'description': f"Bank transfer payment for coffee batch {payment.batch_number or '-'}",
                'department': payment.department,
                'amount': amount,
                'currency': payment.currency,
                'payment_record_id': payment.id,
            })

        db.session.commit()
        logger.info("Payment %s processed by %s via %s: %s %s (%s)",
                    payment.reference, actor.email, method, payment.currency, amount, payment.status)

        if bank_request is not None:
            emails, stage_name = get_pending_approvers(bank_request)
            send_status_email(bank_request, emails, stage_name)
            db.session.commit()
        return payment, bank_request

    @staticmethod
    def settle_bank_transfer(payment, actor):
        """Admin chain cleared: the transfer counts as paid. Caller commits."""
        payment.paid_amount = payment.amount
        payment.status = PaymentStatus.PAID
        logger.info("Bank transfer for %s settled after approval by %s", payment.reference, actor.email)

    @staticmethod
    def reverse_bank_transfer(payment, actor, reason):
        """Rejected transfer: return the money to the float. Caller commits."""
        CashLedger.credit(
            payment.department, payment.outstanding, actor, TransactionType.PAYMENT,
            reference=payment.reference,
            notes=f"Reversal of bank transfer to {payment.supplier}: {reason}",
            payment=payment,
        )
        payment.status = PaymentStatus.PENDING if not payment.paid_amount else PaymentStatus.PARTIAL
        payment.method = None
        logger.info("Bank transfer for %s reversed by %s", payment.reference, actor.email)

    @staticmethod
    def attach_proof(payment_id, file_obj, storage):
        """Uploads a receipt scan / transfer screenshot and links it to the payment."""
        payment = PaymentProcessor.get_payment(payment_id)
        object_name = storage.proof_key(payment.reference, file_obj.filename)
        key = storage.upload_file(file_obj, object_name)
        if not key:
            raise WorkflowError("Upload failed")
        payment.proof_key = key
        db.session.commit()
        return payment

    @staticmethod
    def proof_url(payment_id, storage):
        payment = PaymentProcessor.get_payment(payment_id)
        if not payment.proof_key:
            raise NotFound(f"No proof of payment uploaded for {payment.reference}")
        url = storage.generate_presigned_url(
            payment.proof_key, expiration=current_app.config['PROOF_URL_EXPIRY']
        )
        if not url:
            raise WorkflowError("Could not create a download link")
        return url
