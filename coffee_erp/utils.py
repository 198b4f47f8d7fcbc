import uuid
import logging
from flask import jsonify
from coffee_erp.extensions import db
from coffee_erp.models import MockEmail, AuditLog, User
from coffee_erp.constants import STAGE_ROLES, ApprovalStage
from coffee_erp.exceptions import PermissionDenied
from coffee_erp.money import format_amount
from coffee_erp.tasks import send_async_email
from coffee_erp.services.status_classifier import next_stage

logger = logging.getLogger(__name__)


def new_reference(prefix):
    return f"{prefix}-{uuid.uuid4().hex[:6].upper()}"


def send_system_email(recipient, subject, body, link=None):
    """Logs the message to the mock inbox and hands it to Celery."""
    if not recipient:
        return
    db.session.add(MockEmail(recipient=recipient, subject=subject, body=body, link=link))
    send_async_email.delay(subject, recipient, body, is_html=False)
    logger.debug("Queued email to %s: %s", recipient, subject)


def get_pending_approvers(req):
    """Returns (emails, stage_label) for whoever has to act next on the request."""
    stage = next_stage(req)
    if stage is None:
        return [], None

    role = STAGE_ROLES[stage]
    users = User.query.filter_by(role=role).order_by(User.id).all()
    emails = [u.email for u in users if u.id != req.requested_by_id]
    return emails, ApprovalStage.LABELS[stage]


def send_status_email(req, recipients, stage_name):
    """Internal workflow notification for the next approver group."""
    subject = f"Action Required: {req.type} {req.reference}"
    body = (
        f"{req.title}\n"
        f"Amount: {format_amount(req.amount, req.currency)}\n"
        f"Department: {req.department}\n"
        f"Current Stage: {stage_name}\n\n"
        "Please log in to review and approve."
    )
    for recipient in recipients:
        send_system_email(recipient, subject, body)


def send_outcome_email(req, approved):
    """Tells the requestor their request reached a terminal state."""
    requester = req.requested_by
    if not requester:
        return
    if approved:
        subject = f"Approved: {req.reference}"
        body = (
            f"Dear {requester.display_name}, your {req.type} of "
            f"{format_amount(req.amount, req.currency)} has been APPROVED."
        )
    else:
        subject = f"Rejected: {req.reference}"
        body = (
            f"Dear {requester.display_name}, your {req.type} of "
            f"{format_amount(req.amount, req.currency)} has been REJECTED. "
            f"Reason: {req.rejection_reason}"
        )
    send_system_email(requester.email, subject, body)


def log_audit(req_id, user_id, action, details=None):
    """Records a business action. The caller commits."""
    db.session.add(AuditLog(
        approval_request_id=req_id,
        user_id=user_id,
        action=action,
        details=details
    ))


def ensure_role(user, *roles):
    if user is None or user.role not in roles:
        raise PermissionDenied("Access Denied")


def form_errors(form):
    """JSON body for a form that failed validation."""
    return jsonify({
        'error': 'ValidationError',
        'message': 'Please correct the highlighted fields.',
        'fields': form.errors,
    }), 400
