# Workflow module - approval state machine, fraud check, access rules
from .models import (
    PolicyStatus,
    UserRole,
    WorkflowAction,
    ApprovalAction,
    Transition,
    FraudCheckResult,
    PRODUCT_TYPES,
)
from .state_machine import TRANSITIONS, resolve_transition, get_valid_actions, is_terminal, is_forward
from .fraud import perform_fraud_check

__all__ = [
    "PolicyStatus",
    "UserRole",
    "WorkflowAction",
    "ApprovalAction",
    "Transition",
    "FraudCheckResult",
    "PRODUCT_TYPES",
    "TRANSITIONS",
    "resolve_transition",
    "get_valid_actions",
    "is_terminal",
    "is_forward",
    "perform_fraud_check",
]
