from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from coffee_erp.constants import Role, MODIFICATION_REASONS
from coffee_erp.forms import ForwardForm, ModificationForm
from coffee_erp.services.modification_service import ModificationService
from coffee_erp.services.payment_service import PaymentProcessor
from coffee_erp.utils import ensure_role, form_errors

modifications_bp = Blueprint('modifications', __name__)


@modifications_bp.route('', methods=['GET'])
@login_required
def pending():
    department = current_user.department
    if current_user.role == Role.ADMIN:
        department = request.args.get('department') or department
    return jsonify([m.to_dict() for m in ModificationService.pending_for(department)])


@modifications_bp.route('', methods=['POST'])
@login_required
def request_modification():
    ensure_role(current_user, Role.FINANCE, Role.ADMIN)
    form = ModificationForm()
    if not form.validate_on_submit():
        return form_errors(form)
    payment = PaymentProcessor.get_payment(form.payment_id.data)
    mod = ModificationService.request_modification(
        payment, current_user, form.target_department.data,
        MODIFICATION_REASONS[form.reason.data], form.comments.data
    )
    return jsonify(mod.to_dict()), 201


@modifications_bp.route('/<int:mod_id>/forward', methods=['POST'])
@login_required
def forward(mod_id):
    form = ForwardForm()
    if not form.validate_on_submit():
        return form_errors(form)
    forwarded = ModificationService.forward(mod_id, current_user, form.target_department.data,
                                            form.reason.data, form.comments.data)
    return jsonify(forwarded.to_dict())


@modifications_bp.route('/<int:mod_id>/complete', methods=['POST'])
@login_required
def complete(mod_id):
    mod = ModificationService.complete(mod_id, current_user)
    return jsonify(mod.to_dict())


@modifications_bp.route('/<int:mod_id>/cancel', methods=['POST'])
@login_required
def cancel(mod_id):
    mod = ModificationService.cancel(mod_id, current_user)
    return jsonify(mod.to_dict())


@modifications_bp.route('/payments/<int:payment_id>/history')
@login_required
def history(payment_id):
    PaymentProcessor.get_payment(payment_id)
    return jsonify([
        {'from': s.from_department, 'to': s.to_department, 'action': s.action,
         'reason': s.reason, 'comments': s.comments, 'processed_by': s.processed_by,
         'timestamp': s.timestamp.isoformat() if s.timestamp else None}
        for s in ModificationService.history(payment_id)
    ])
