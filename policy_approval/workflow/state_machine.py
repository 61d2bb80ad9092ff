# policy_approval/workflow/state_machine.py
"""
Policy approval state machine.

States:
draft -> pending_underwriter          (creator submits)
pending_underwriter -> pending_manager (underwriter approves)
pending_underwriter -> rejected        (underwriter rejects)
pending_manager -> approved            (manager approves)
pending_manager -> rejected            (manager rejects)

approved and rejected are terminal.
"""

from typing import Dict, List, Optional, Tuple, Union

from .models import (
    PolicyStatus,
    UserRole,
    WorkflowAction,
    Transition,
    STATUS_RANK,
    TERMINAL_STATUSES,
)
from ..errors import CommentRequiredError, InvalidTransitionError


# (current status, actor role, action) -> next status
TRANSITIONS: Dict[Tuple[PolicyStatus, UserRole, WorkflowAction], PolicyStatus] = {
    (PolicyStatus.DRAFT, UserRole.CREATOR, WorkflowAction.SUBMIT): PolicyStatus.PENDING_UNDERWRITER,
    (PolicyStatus.PENDING_UNDERWRITER, UserRole.UNDERWRITER, WorkflowAction.APPROVE): PolicyStatus.PENDING_MANAGER,
    (PolicyStatus.PENDING_UNDERWRITER, UserRole.UNDERWRITER, WorkflowAction.REJECT): PolicyStatus.REJECTED,
    (PolicyStatus.PENDING_MANAGER, UserRole.MANAGER, WorkflowAction.APPROVE): PolicyStatus.APPROVED,
    (PolicyStatus.PENDING_MANAGER, UserRole.MANAGER, WorkflowAction.REJECT): PolicyStatus.REJECTED,
}


def _coerce(status, role, action) -> Optional[Tuple[PolicyStatus, UserRole, WorkflowAction]]:
    try:
        return PolicyStatus(status), UserRole(role), WorkflowAction(action)
    except ValueError:
        return None


def resolve_transition(
    status: Union[PolicyStatus, str],
    role: Union[UserRole, str],
    action: Union[WorkflowAction, str],
    comments: Optional[str] = None,
) -> Transition:
    """
    Look up the next status for an actor's action.

    Args:
        status: Current policy status
        role: Role of the actor
        action: submit, approve or reject
        comments: Free-text comment; required for reject

    Returns:
        The resolved Transition

    Raises:
        InvalidTransitionError: triple not in TRANSITIONS
        CommentRequiredError: reject without a non-empty comment
    """
    key = _coerce(status, role, action)
    if key is None or key not in TRANSITIONS:
        raise InvalidTransitionError(str(_value(status)), str(_value(role)), str(_value(action)))

    current, actor_role, requested = key
    if requested == WorkflowAction.REJECT and not (comments or "").strip():
        raise CommentRequiredError()

    return Transition(
        previous_status=current,
        new_status=TRANSITIONS[key],
        role=actor_role,
        action=requested,
    )


def get_valid_actions(
    status: Union[PolicyStatus, str],
    role: Union[UserRole, str],
) -> List[WorkflowAction]:
    """Actions the given role may take on a policy in this status."""
    try:
        current, actor_role = PolicyStatus(status), UserRole(role)
    except ValueError:
        return []
    return [
        action
        for (from_status, from_role, action) in TRANSITIONS
        if from_status == current and from_role == actor_role
    ]


def is_terminal(status: Union[PolicyStatus, str]) -> bool:
    return PolicyStatus(status) in TERMINAL_STATUSES


def is_forward(previous: Union[PolicyStatus, str], new: Union[PolicyStatus, str]) -> bool:
    """
    True when moving from previous to new respects the chain.

    Forward means exactly one stage ahead, or into REJECTED from a pending
    status.
    """
    previous, new = PolicyStatus(previous), PolicyStatus(new)
    if previous in TERMINAL_STATUSES:
        return False
    if new == PolicyStatus.REJECTED:
        return previous in (PolicyStatus.PENDING_UNDERWRITER, PolicyStatus.PENDING_MANAGER)
    return STATUS_RANK[new] == STATUS_RANK[previous] + 1


def _value(item) -> str:
    return item.value if hasattr(item, "value") else item
