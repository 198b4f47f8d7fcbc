from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from coffee_erp.constants import QueueBucket, Role
from coffee_erp.exceptions import PermissionDenied
from coffee_erp.forms import ApprovalRequestForm, ApproveForm, RejectForm
from coffee_erp.services.approval_service import ApprovalService
from coffee_erp.services.status_classifier import queue_bucket
from coffee_erp.utils import form_errors

main_bp = Blueprint('main', __name__)


def _can_view(req):
    return current_user.role in (Role.ADMIN, Role.FINANCE) or req.requested_by_id == current_user.id


@main_bp.route('/dashboard')
@login_required
def dashboard():
    # 1. Fetch Requests based on Role
    all_reqs = ApprovalService.visible_requests(current_user)

    # 2. Identify "Action Required" items
    pending_items = ApprovalService.action_required(current_user, all_reqs)

    # 3. Calculate Stats
    buckets = [queue_bucket(r) for r in all_reqs]
    stats = {
        'total': len(all_reqs),
        'action_required': len(pending_items),
        'pending': buckets.count(QueueBucket.PENDING),
        'processing': buckets.count(QueueBucket.PROCESSING),
        'completed': buckets.count(QueueBucket.COMPLETED),
        'rejected': buckets.count(QueueBucket.REJECTED),
    }

    return jsonify({
        'stats': stats,
        'requests': [r.to_dict() for r in all_reqs],
        'action_required': [r.id for r in pending_items],
    })


@main_bp.route('/requests', methods=['POST'])
@login_required
def create_request():
    form = ApprovalRequestForm()
    if not form.validate_on_submit():
        return form_errors(form)
    req = ApprovalService.submit_request(current_user, {
        'type': form.type.data,
        'title': form.title.data,
        'description': form.description.data,
        'department': form.department.data,
        'priority': form.priority.data,
        'amount': form.amount.data,
        'currency': form.currency.data,
    })
    return jsonify(req.to_dict()), 201


@main_bp.route('/requests/<int:request_id>')
@login_required
def view_request(request_id):
    req = ApprovalService.get_request(request_id)
    if not _can_view(req):
        raise PermissionDenied("Access Denied")
    data = req.to_dict()
    data['audit'] = [
        {'action': a.action, 'details': a.details, 'user_id': a.user_id,
         'timestamp': a.timestamp.isoformat() if a.timestamp else None}
        for a in req.audit_logs
    ]
    return jsonify(data)


@main_bp.route('/requests/<int:request_id>/eligibility')
@login_required
def eligibility(request_id):
    req = ApprovalService.get_request(request_id)
    result = ApprovalService.check_eligibility(req, current_user)
    return jsonify({'can_approve': result.can_approve, 'reason': result.reason})


@main_bp.route('/requests/<int:request_id>/approve', methods=['POST'])
@login_required
def approve(request_id):
    form = ApproveForm()
    if not form.validate_on_submit():
        return form_errors(form)
    req = ApprovalService.approve(request_id, current_user,
                                  stage=form.stage.data or None, comments=form.comments.data)
    return jsonify(req.to_dict())


@main_bp.route('/requests/<int:request_id>/reject', methods=['POST'])
@login_required
def reject(request_id):
    form = RejectForm()
    if not form.validate_on_submit():
        return form_errors(form)
    req = ApprovalService.reject(request_id, current_user, form.reason.data, form.comments.data)
    return jsonify(req.to_dict())
