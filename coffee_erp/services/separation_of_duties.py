"""
Separation of Duties guard for financial approvals.

A request may not be approved by the person who raised it, and nobody may
sign off the same request at two stages. The check is a pure read; callers
decide what to do with the outcome.
"""
from collections import namedtuple

from coffee_erp.constants import ApprovalStage

Eligibility = namedtuple('Eligibility', ['can_approve', 'reason'])

OWN_REQUEST = (
    "You cannot approve your own request. Separation of Duties requires "
    "a different person to approve each request."
)


def _same_user(a, b):
    if a is None or b is None:
        return False
    if a.id is not None and a.id == b.id:
        return True
    return bool(a.email and b.email and a.email.strip().lower() == b.email.strip().lower())


def _prior_approvers(req, stage):
    """(stage, user) pairs for the stages before ``stage`` that were signed off."""
    approvers = [
        (ApprovalStage.FINANCE, req.finance_approved_by),
        (ApprovalStage.ADMIN1, req.admin_approved_1_by),
        (ApprovalStage.ADMIN2, req.admin_approved_2_by),
    ]
    if stage in ApprovalStage.ORDER:
        cutoff = ApprovalStage.ORDER.index(stage)
        approvers = approvers[:cutoff]
    return [(s, u) for s, u in approvers if u is not None]


def check_approval_eligibility(req, actor, stage=None):
    """
    Returns Eligibility(can_approve, reason) for ``actor`` signing off
    ``req`` at ``stage`` (all recorded stages are checked when stage is None).
    """
    if actor is None:
        return Eligibility(False, "No acting user.")

    if _same_user(req.requested_by, actor):
        return Eligibility(False, OWN_REQUEST)

    for prior_stage, approver in _prior_approvers(req, stage):
        if _same_user(approver, actor):
            label = ApprovalStage.LABELS[prior_stage]
            return Eligibility(
                False,
                f"You already approved this request at the {label} stage. "
                "A different person must approve the next stage."
            )

    return Eligibility(True, None)
