# policy_approval/workflow/models.py
"""
Workflow models for the two-step policy approval chain.
"""

from enum import Enum
from dataclasses import dataclass


class PolicyStatus(str, Enum):
    """
    Policy lifecycle states.

    DRAFT -> PENDING_UNDERWRITER -> PENDING_MANAGER -> APPROVED
    PENDING_UNDERWRITER/PENDING_MANAGER -> REJECTED
    """
    DRAFT = "draft"
    PENDING_UNDERWRITER = "pending_underwriter"
    PENDING_MANAGER = "pending_manager"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserRole(str, Enum):
    CREATOR = "creator"
    UNDERWRITER = "underwriter"
    MANAGER = "manager"


class WorkflowAction(str, Enum):
    """What an actor asks the workflow to do."""
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalAction(str, Enum):
    """Action as recorded in the audit log."""
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


# Order along the approval chain; REJECTED sits outside it.
STATUS_RANK = {
    PolicyStatus.DRAFT: 0,
    PolicyStatus.PENDING_UNDERWRITER: 1,
    PolicyStatus.PENDING_MANAGER: 2,
    PolicyStatus.APPROVED: 3,
}

TERMINAL_STATUSES = frozenset({PolicyStatus.APPROVED, PolicyStatus.REJECTED})

# Which role acts on a policy waiting in each pending status
PENDING_STATUS_FOR_ROLE = {
    UserRole.UNDERWRITER: PolicyStatus.PENDING_UNDERWRITER,
    UserRole.MANAGER: PolicyStatus.PENDING_MANAGER,
}

PRODUCT_TYPES = (
    "Auto Insurance",
    "Home Insurance",
    "Life Insurance",
    "Health Insurance",
    "Business Insurance",
    "Travel Insurance",
)


@dataclass(frozen=True)
class Transition:
    """Resolved workflow step."""
    previous_status: PolicyStatus
    new_status: PolicyStatus
    role: UserRole
    action: WorkflowAction

    @property
    def log_action(self) -> ApprovalAction:
        return LOG_ACTION_FOR[self.action]


LOG_ACTION_FOR = {
    WorkflowAction.SUBMIT: ApprovalAction.SUBMITTED,
    WorkflowAction.APPROVE: ApprovalAction.APPROVED,
    WorkflowAction.REJECT: ApprovalAction.REJECTED,
}


@dataclass(frozen=True)
class FraudCheckResult:
    """Outcome of the fraud heuristic at creation time."""
    passed: bool
    reason: str
    risk_score: int
    risk_factors: tuple = ()
