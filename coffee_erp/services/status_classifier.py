from coffee_erp.constants import (
    ApprovalStage, DisplayStatus, QueueBucket, RequestStatus, RequestType
)


def required_stages(req):
    """The approval stages this request has to clear, in order."""
    stages = ApprovalStage.ORDER if req.requires_three_approvals else ApprovalStage.ORDER[:2]
    # Finance already signed off a bank transfer when it processed the payment
    if req.type == RequestType.BANK_TRANSFER:
        stages = tuple(s for s in stages if s != ApprovalStage.FINANCE)
    return stages


def completed_stages(req):
    done = {
        ApprovalStage.FINANCE: req.finance_approved_at is not None,
        ApprovalStage.ADMIN1: req.admin_approved_1_at is not None,
        ApprovalStage.ADMIN2: req.admin_approved_2_at is not None,
    }
    return [stage for stage in ApprovalStage.ORDER if done[stage]]


def next_stage(req):
    """First required stage without a sign-off, or None when fully approved or rejected."""
    if is_rejected(req):
        return None
    done = set(completed_stages(req))
    for stage in required_stages(req):
        if stage not in done:
            return stage
    return None


def is_rejected(req):
    return req.status == RequestStatus.REJECTED or req.rejected_at is not None


def is_fully_approved(req):
    return not is_rejected(req) and next_stage(req) is None


def classify(req):
    """Dashboard label derived from the raw approval flags."""
    if is_rejected(req):
        return DisplayStatus.REJECTED
    stage = next_stage(req)
    if stage is None:
        return DisplayStatus.FULLY_APPROVED
    if stage == ApprovalStage.FINANCE:
        return DisplayStatus.PENDING_FINANCE
    return DisplayStatus.NEEDS_ADMIN


def queue_bucket(req):
    if is_rejected(req):
        return QueueBucket.REJECTED
    if is_fully_approved(req):
        return QueueBucket.COMPLETED
    if completed_stages(req):
        return QueueBucket.PROCESSING
    return QueueBucket.PENDING
