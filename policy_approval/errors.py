# policy_approval/errors.py
"""
Errors raised by the service layer.

Routes translate these into HTTP responses; the message is passed through
to the caller unmodified.
"""


class PolicyApprovalError(Exception):
    """Base class for service errors."""
    status_code = 400


class NotFoundError(PolicyApprovalError):
    """Requested record does not exist."""
    status_code = 404


class PermissionDeniedError(PolicyApprovalError):
    """Actor is not allowed to perform the operation on this record."""
    status_code = 403


class InvalidTransitionError(PolicyApprovalError):
    """(status, role, action) is not in the workflow transition table."""
    status_code = 409

    def __init__(self, status: str, role: str, action: str):
        self.status = status
        self.role = role
        self.action = action
        super().__init__(
            f"Invalid approval workflow state: cannot {action} a policy in "
            f"status '{status}' as {role}"
        )


class ValidationError(PolicyApprovalError):
    """Input rejected before or by the database."""
    status_code = 422


class CommentRequiredError(ValidationError):
    """Rejection submitted without a reason."""

    def __init__(self, message: str = "Please provide a reason for rejection"):
        super().__init__(message)


class ConflictError(PolicyApprovalError):
    """Unique constraint violated."""
    status_code = 409
