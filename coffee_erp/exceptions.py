"""
Workflow exceptions raised by the service layer.

Each carries the HTTP status the API answers with; the handler registered in
create_app turns them into JSON responses.
"""


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__ or 'Workflow error'
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.__class__.__name__, 'message': self.message}


class NotFound(WorkflowError):
    """Record not found."""
    status_code = 404


class PermissionDenied(WorkflowError):
    """You are not allowed to perform this action."""
    status_code = 403


class SeparationOfDutiesViolation(PermissionDenied):
    """Approval blocked by Separation of Duties policy."""


class InvalidTransition(WorkflowError):
    """The request is not in a state that allows this action."""
    status_code = 409


class InvalidAmount(WorkflowError):
    """Invalid amount."""
    status_code = 422


class InsufficientFunds(WorkflowError):
    """Insufficient funds."""
    status_code = 422

    def __init__(self, available, required, currency='UGX'):
        self.available = available
        self.required = required
        self.currency = currency
        super().__init__(
            f"Available: {currency} {available:,}, Required: {currency} {required:,}"
        )

    def to_dict(self):
        data = super().to_dict()
        data['available'] = str(self.available)
        data['required'] = str(self.required)
        return data
