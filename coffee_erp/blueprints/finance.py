from datetime import datetime
from flask import Blueprint, jsonify, request, Response, send_file
from flask_login import login_required, current_user
from coffee_erp.constants import Role
from coffee_erp.exceptions import WorkflowError
from coffee_erp.forms import DepositForm, ExpenseForm, PaymentForm, ProcessPaymentForm, ProofForm
from coffee_erp.models import ApprovalRequest
from coffee_erp.services.payment_service import CashLedger, PaymentProcessor
from coffee_erp.services.ledger_export import generate_ledger_csv
from coffee_erp.services.payment_slip import generate_payment_slip
from coffee_erp.services.s3_service import S3Service
from coffee_erp.utils import ensure_role, form_errors

finance_bp = Blueprint('finance', __name__)


def _parse_date(value, end_of_day=False):
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise WorkflowError(f"Invalid date: {value}. Use YYYY-MM-DD.")
    return parsed.replace(hour=23, minute=59, second=59) if end_of_day else parsed


# --- CASH FLOAT ---
@finance_bp.route('/balance')
@login_required
def balance():
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    department = request.args.get('department') or current_user.department
    return jsonify({
        'department': department,
        'balance': str(CashLedger.get_balance(department)),
    })


@finance_bp.route('/deposits', methods=['POST'])
@login_required
def record_deposit():
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    form = DepositForm()
    if not form.validate_on_submit():
        return form_errors(form)
    txn = CashLedger.record_deposit(form.department.data, form.amount.data, current_user,
                                    reference=form.reference.data, notes=form.notes.data)
    return jsonify(txn.to_dict()), 201


@finance_bp.route('/deposits/<int:transaction_id>/confirm', methods=['POST'])
@login_required
def confirm_deposit(transaction_id):
    ensure_role(current_user, Role.FINANCE)
    txn = CashLedger.confirm_deposit(transaction_id, current_user)
    return jsonify(txn.to_dict())


@finance_bp.route('/expenses', methods=['POST'])
@login_required
def record_expense():
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    form = ExpenseForm()
    if not form.validate_on_submit():
        return form_errors(form)
    txn = CashLedger.record_expense(form.department.data, form.amount.data, current_user,
                                    form.category.data, form.description.data,
                                    reference=form.reference.data, notes=form.notes.data)
    return jsonify(txn.to_dict()), 201


# --- SUPPLIER PAYMENTS ---
@finance_bp.route('/payments', methods=['POST'])
@login_required
def create_payment():
    form = PaymentForm()
    if not form.validate_on_submit():
        return form_errors(form)
    payment = PaymentProcessor.create_payment(current_user, {
        'supplier': form.supplier.data,
        'batch_number': form.batch_number.data,
        'department': form.department.data,
        'amount': form.amount.data,
        'currency': form.currency.data,
        'notes': form.notes.data,
        'from_department': current_user.department,
    })
    return jsonify(payment.to_dict()), 201


@finance_bp.route('/payments/<int:payment_id>/process', methods=['POST'])
@login_required
def process_payment(payment_id):
    ensure_role(current_user, Role.FINANCE)
    form = ProcessPaymentForm()
    if not form.validate_on_submit():
        return form_errors(form)
    payment, bank_request = PaymentProcessor.process_payment(
        payment_id, form.method.data, current_user,
        amount=form.amount.data, notes=form.notes.data
    )
    return jsonify({
        'payment': payment.to_dict(),
        'approval_request': bank_request.to_dict() if bank_request else None,
    })


@finance_bp.route('/payments/<int:payment_id>/slip')
@login_required
def payment_slip(payment_id):
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    payment = PaymentProcessor.get_payment(payment_id)
    approval = ApprovalRequest.query.filter_by(payment_record_id=payment.id) \
        .order_by(ApprovalRequest.id.desc()).first()
    pdf = generate_payment_slip(payment, approval)
    return send_file(pdf, mimetype='application/pdf', as_attachment=True,
                     download_name=f"{payment.reference}.pdf")


@finance_bp.route('/payments/<int:payment_id>/proof', methods=['POST'])
@login_required
def upload_proof(payment_id):
    ensure_role(current_user, Role.FINANCE)
    form = ProofForm()
    if not form.validate_on_submit():
        return form_errors(form)
    payment = PaymentProcessor.attach_proof(payment_id, form.proof.data, S3Service())
    return jsonify(payment.to_dict())


@finance_bp.route('/payments/<int:payment_id>/proof')
@login_required
def proof_link(payment_id):
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    url = PaymentProcessor.proof_url(payment_id, S3Service())
    return jsonify({'url': url})


# --- LEDGER EXPORT ---
@finance_bp.route('/ledger.csv')
@login_required
def export_ledger():
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    start = _parse_date(request.args.get('start_date'))
    end = _parse_date(request.args.get('end_date'), end_of_day=True)
    output = generate_ledger_csv(request.args.get('department'), start, end)
    filename = f"cash_ledger_{datetime.now().strftime('%Y%m%d')}.csv"
    return Response(
        output.getvalue(),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )
