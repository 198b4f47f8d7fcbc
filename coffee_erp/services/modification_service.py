import logging
from datetime import datetime
from coffee_erp.extensions import db
from coffee_erp.models import Department, ModificationRequest, User, WorkflowStep
from coffee_erp.constants import DepartmentName, ModificationStatus, Role, WorkflowAction
from coffee_erp.exceptions import NotFound, InvalidTransition, PermissionDenied, WorkflowError
from coffee_erp.utils import send_system_email

logger = logging.getLogger(__name__)


def known_departments():
    """Built-in departments plus any added by an admin."""
    names = list(DepartmentName.ALL)
    for dept in Department.query.order_by(Department.name).all():
        if dept.name not in names:
            names.append(dept.name)
    return names


class ModificationService:

    @staticmethod
    def get(mod_id):
        mod = db.session.get(ModificationRequest, mod_id)
        if not mod:
            raise NotFound(f"Modification request {mod_id} not found")
        return mod

    @staticmethod
    def _check_target(target_department, current=None):
        if target_department not in known_departments():
            raise WorkflowError(f"Unknown department: {target_department}")
        if current and target_department == current:
            raise WorkflowError("Target department must differ from the current one")

    @staticmethod
    def _notify(mod):
        recipients = User.query.filter_by(department=mod.target_department).all()
        subject = f"Modification Requested: batch {mod.batch_number or mod.original_payment_id}"
        body = (
            f"{mod.requested_by} ({mod.requested_by_department}) asked {mod.target_department} "
            f"to review a payment.\nReason: {mod.reason}\n{mod.comments or ''}"
        )
        for user in recipients:
            send_system_email(user.email, subject, body)

    # --- CREATE ---
    @staticmethod
    def request_modification(payment, actor, target_department, reason, comments=None):
        """Sends a payment back to an upstream department for correction."""
        if not reason:
            raise WorkflowError("Reason is required")
        from_department = actor.department or DepartmentName.FINANCE
        ModificationService._check_target(target_department, from_department)

        mod = ModificationRequest(
            original_payment=payment,
            batch_number=payment.batch_number,
            requested_by=actor.display_name,
            requested_by_department=from_department,
            target_department=target_department,
            reason=reason,
            comments=comments,
            status=ModificationStatus.PENDING,
        )
        db.session.add(mod)
        db.session.add(WorkflowStep(
            payment_id=payment.id,
            from_department=from_department,
            to_department=target_department,
            action=WorkflowAction.MODIFICATION_REQUESTED,
            reason=reason,
            comments=comments,
            processed_by=actor.display_name,
        ))
        db.session.commit()
        logger.info("Modification %s for payment %s sent %s -> %s",
                    mod.id, payment.reference, from_department, target_department)

        ModificationService._notify(mod)
        db.session.commit()
        return mod

    # --- TRANSITIONS ---
    @staticmethod
    def _can_act(mod, actor):
        return actor.role == Role.ADMIN or actor.department == mod.target_department

    @staticmethod
    def complete(mod_id, actor):
        mod = ModificationService.get(mod_id)
        if not ModificationService._can_act(mod, actor):
            raise PermissionDenied("Only the target department can complete this request.")
        if mod.status == ModificationStatus.COMPLETED:
            return mod
        if mod.status == ModificationStatus.CANCELLED:
            raise InvalidTransition("Cancelled modification requests cannot be completed.")

        mod.status = ModificationStatus.COMPLETED
        mod.completed_at = datetime.utcnow()
        mod.completed_by = actor.display_name
        db.session.add(WorkflowStep(
            payment_id=mod.original_payment_id,
            from_department=mod.target_department,
            to_department=mod.requested_by_department,
            action=WorkflowAction.MODIFIED,
            reason=mod.reason,
            processed_by=actor.display_name,
        ))
        db.session.commit()
        logger.info("Modification %s completed by %s", mod.id, actor.email)
        return mod

    @staticmethod
    def forward(mod_id, actor, target_department, reason, comments=None):
        """
        Passes the request on to another department. The source is closed
        and a fresh pending request is opened for the new target. Forwarding
        the same request twice returns the request created the first time.
        """
        mod = ModificationService.get(mod_id)
        if not ModificationService._can_act(mod, actor):
            raise PermissionDenied("Only the target department can forward this request.")
        if mod.forwarded_to is not None:
            return mod.forwarded_to
        if mod.status == ModificationStatus.CANCELLED:
            raise InvalidTransition("Cancelled modification requests cannot be forwarded.")
        if not reason:
            raise WorkflowError("Reason is required")
        ModificationService._check_target(target_department, mod.target_department)

        forwarded = ModificationRequest(
            original_payment_id=mod.original_payment_id,
            batch_number=mod.batch_number,
            requested_by=actor.display_name,
            requested_by_department=mod.target_department,
            target_department=target_department,
            reason=reason,
            comments=comments or f"Forwarded from {mod.target_department}: {mod.reason}",
            status=ModificationStatus.PENDING,
        )
        db.session.add(forwarded)

        mod.forwarded_to = forwarded
        if mod.status != ModificationStatus.COMPLETED:
            mod.status = ModificationStatus.COMPLETED
            mod.completed_at = datetime.utcnow()
            mod.completed_by = actor.display_name

        db.session.add(WorkflowStep(
            payment_id=mod.original_payment_id,
            from_department=mod.target_department,
            to_department=target_department,
            action=WorkflowAction.MODIFICATION_REQUESTED,
            reason=reason,
            comments=forwarded.comments,
            processed_by=actor.display_name,
        ))
        db.session.commit()
        logger.info("Modification %s forwarded %s -> %s as %s",
                    mod.id, mod.target_department, target_department, forwarded.id)

        ModificationService._notify(forwarded)
        db.session.commit()
        return forwarded

    @staticmethod
    def cancel(mod_id, actor):
        mod = ModificationService.get(mod_id)
        if mod.status == ModificationStatus.CANCELLED:
            return mod
        if mod.status == ModificationStatus.COMPLETED:
            raise InvalidTransition("Completed modification requests cannot be cancelled.")
        if actor.role != Role.ADMIN and actor.display_name != mod.requested_by:
            raise PermissionDenied("Only the requester or an admin can cancel this request.")
        mod.status = ModificationStatus.CANCELLED
        db.session.commit()
        return mod

    # --- QUERIES ---
    @staticmethod
    def pending_for(department):
        return ModificationRequest.query.filter_by(
            target_department=department, status=ModificationStatus.PENDING
        ).order_by(ModificationRequest.created_at).all()

    @staticmethod
    def history(payment_id):
        return WorkflowStep.query.filter_by(payment_id=payment_id).order_by(
            WorkflowStep.timestamp, WorkflowStep.id
        ).all()
