import logging
from datetime import datetime
from flask import current_app
from coffee_erp.extensions import db
from coffee_erp.models import ApprovalRequest
from coffee_erp.constants import (
    ApprovalStage, RequestStatus, RequestType, Role, STAGE_ROLES
)
from coffee_erp.exceptions import (
    NotFound, InvalidTransition, PermissionDenied, SeparationOfDutiesViolation, WorkflowError
)
from coffee_erp.money import parse_amount
from coffee_erp.services.separation_of_duties import check_approval_eligibility
from coffee_erp.services.status_classifier import (
    next_stage, is_rejected, is_fully_approved, classify
)
from coffee_erp.utils import (
    new_reference, log_audit, get_pending_approvers, send_status_email, send_outcome_email
)

logger = logging.getLogger(__name__)

# Which columns each stage writes to
STAGE_FIELDS = {
    ApprovalStage.FINANCE: ('finance_approved_by', 'finance_approved_at'),
    ApprovalStage.ADMIN1: ('admin_approved_1_by', 'admin_approved_1_at'),
    ApprovalStage.ADMIN2: ('admin_approved_2_by', 'admin_approved_2_at'),
}

# Raw status once a stage is signed off but more stages remain
INTERIM_STATUS = {
    ApprovalStage.FINANCE: RequestStatus.FINANCE_APPROVED,
    ApprovalStage.ADMIN1: RequestStatus.ADMIN1_APPROVED,
}


class ApprovalService:

    @staticmethod
    def get_request(request_id):
        req = db.session.get(ApprovalRequest, request_id)
        if not req:
            raise NotFound(f"Request {request_id} not found")
        return req

    # --- SUBMISSION ---
    @staticmethod
    def build_request(actor, data):
        """Creates (but does not commit) a pending request from form data."""
        req_type = data.get('type') or RequestType.EXPENSE
        if req_type not in RequestType.ALL:
            raise WorkflowError(f"Unknown request type: {req_type}")

        title = (data.get('title') or '').strip()
        if not title:
            raise WorkflowError("Title is required")

        currency = data.get('currency') or current_app.config['DEFAULT_CURRENCY']
        amount = parse_amount(data.get('amount'), currency)
        threshold = current_app.config['THREE_APPROVAL_THRESHOLD']

        req = ApprovalRequest(
            reference=new_reference('REQ'),
            type=req_type,
            title=title,
            description=data.get('description'),
            department=data.get('department') or actor.department or 'General',
            priority=data.get('priority') or 'Medium',
            amount=amount,
            currency=currency,
            status=RequestStatus.PENDING,
            requires_three_approvals=amount >= threshold,
            requested_by=actor,
            payment_record_id=data.get('payment_record_id'),
        )
        db.session.add(req)
        return req

    @staticmethod
    def submit_request(actor, data):
        req = ApprovalService.build_request(actor, data)
        db.session.flush()
        log_audit(req.id, actor.id, 'SUBMITTED', f"{req.type}: {req.title}")
        db.session.commit()
        logger.info("Request %s submitted by %s for %s %s",
                    req.reference, actor.email, req.currency, req.amount)

        emails, stage_name = get_pending_approvers(req)
        send_status_email(req, emails, stage_name)
        db.session.commit()
        return req

    # --- ELIGIBILITY ---
    @staticmethod
    def check_eligibility(req, actor):
        """SoD guard against the stage the request is waiting on."""
        return check_approval_eligibility(req, actor, next_stage(req))

    # --- TRANSITIONS ---
    @staticmethod
    def approve(request_id, actor, stage=None, comments=None):
        req = ApprovalService.get_request(request_id)

        if is_rejected(req):
            raise InvalidTransition("This request has been rejected.")
        if is_fully_approved(req):
            raise InvalidTransition("This request is already fully approved.")

        current = next_stage(req)
        if stage and stage != current:
            raise InvalidTransition(
                f"Request is awaiting {ApprovalStage.LABELS[current]}, not {stage}."
            )

        if actor.role != STAGE_ROLES[current]:
            raise PermissionDenied(f"{ApprovalStage.LABELS[current]} requires the {STAGE_ROLES[current]} role.")

        eligibility = check_approval_eligibility(req, actor, current)
        if not eligibility.can_approve:
            logger.warning("SoD blocked %s on %s: %s", actor.email, req.reference, eligibility.reason)
            raise SeparationOfDutiesViolation(eligibility.reason)

        by_field, at_field = STAGE_FIELDS[current]
        setattr(req, by_field, actor)
        setattr(req, at_field, datetime.utcnow())

        if is_fully_approved(req):
            req.status = RequestStatus.APPROVED
        else:
            req.status = INTERIM_STATUS[current]

        log_audit(req.id, actor.id, f"APPROVED_{current.upper()}", comments)

        if req.status == RequestStatus.APPROVED:
            ApprovalService._on_fully_approved(req, actor)

        db.session.commit()
        logger.info("Request %s approved at %s stage by %s (%s)",
                    req.reference, current, actor.email, classify(req))

        if req.status == RequestStatus.APPROVED:
            send_outcome_email(req, approved=True)
        else:
            emails, stage_name = get_pending_approvers(req)
            send_status_email(req, emails, stage_name)
        db.session.commit()
        return req

    @staticmethod
    def reject(request_id, actor, reason, comments=None):
        req = ApprovalService.get_request(request_id)

        if actor.role not in (Role.FINANCE, Role.ADMIN):
            raise PermissionDenied("Only Finance or Admin can reject requests.")
        if is_rejected(req) or is_fully_approved(req):
            raise InvalidTransition(f"Request is already {req.status}.")
        if not reason or not reason.strip():
            raise WorkflowError("Rejection reason is required")

        stage = next_stage(req)
        req.status = RequestStatus.REJECTED
        req.rejection_reason = reason.strip()
        req.rejection_comments = comments
        req.rejected_by = actor
        req.rejected_at = datetime.utcnow()

        log_audit(req.id, actor.id, 'REJECTED', f"Stage: {stage}. Reason: {req.rejection_reason}")

        if req.type == RequestType.BANK_TRANSFER and req.payment_record is not None:
            from coffee_erp.services.payment_service import PaymentProcessor
            PaymentProcessor.reverse_bank_transfer(req.payment_record, actor, req.rejection_reason)

        db.session.commit()
        logger.info("Request %s rejected at %s stage by %s", req.reference, stage, actor.email)

        send_outcome_email(req, approved=False)
        db.session.commit()
        return req

    @staticmethod
    def _on_fully_approved(req, actor):
        if req.type == RequestType.BANK_TRANSFER and req.payment_record is not None:
            from coffee_erp.services.payment_service import PaymentProcessor
            PaymentProcessor.settle_bank_transfer(req.payment_record, actor)

    # --- QUERIES ---
    @staticmethod
    def visible_requests(actor):
        query = ApprovalRequest.query.order_by(ApprovalRequest.created_at.desc())
        if actor.role in (Role.ADMIN, Role.FINANCE):
            return query.all()
        return query.filter_by(requested_by_id=actor.id).all()

    @staticmethod
    def action_required(actor, requests=None):
        """Requests waiting on a stage this user may sign off."""
        if requests is None:
            requests = ApprovalService.visible_requests(actor)
        pending = []
        for req in requests:
            stage = next_stage(req)
            if stage is None or STAGE_ROLES[stage] != actor.role:
                continue
            if check_approval_eligibility(req, actor, stage).can_approve:
                pending.append(req)
        return pending
