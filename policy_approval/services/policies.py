# policy_approval/services/policies.py
"""
Policy service.

Creates policies, applies workflow transitions and keeps the approval
audit trail. Every status change and its audit entry commit together.
"""

import random
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.engine import bind_actor, commit_or_raise, is_postgres
from ..db.models import ApprovalLog, Policy, UserProfile, normalize_id
from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..logging import get_logger
from ..settings import settings
from ..workflow.access import can_create_policy, can_edit_policy, can_submit_policy
from ..workflow.fraud import perform_fraud_check
from ..workflow.models import (
    ApprovalAction,
    PolicyStatus,
    UserRole,
    WorkflowAction,
    PENDING_STATUS_FOR_ROLE,
)
from ..workflow.notifications import notify
from ..workflow.state_machine import resolve_transition

logger = get_logger(__name__)

EDITABLE_FIELDS = ("customer_name", "premium_amount", "product_type")

# numeric(10, 2)
MAX_PREMIUM = Decimal("99999999.99")


class PolicyService:
    """
    Policy operations on behalf of one acting user.

    Args:
        session: Database session
        actor: Profile of the user performing the operations
    """

    def __init__(self, session: Session, actor: UserProfile):
        self.session = session
        self.actor = actor

    def _bind(self) -> None:
        bind_actor(self.session, self.actor.id)

    # ------------------------------------------------------------------ #
    # Create / update
    # ------------------------------------------------------------------ #

    def create_policy(
        self,
        customer_name: str,
        premium_amount: Union[Decimal, float, str],
        product_type: str,
        rng: Optional[random.Random] = None,
    ) -> Policy:
        """
        Create a draft policy annotated with a fraud check.

        The fraud check never blocks creation.

        Raises:
            PermissionDeniedError: actor is not a creator
            ValidationError: missing fields or non-positive premium
        """
        if not can_create_policy(self.actor):
            raise PermissionDeniedError("Only creators can create policies")

        fields = _clean_fields(
            customer_name=customer_name,
            premium_amount=premium_amount,
            product_type=product_type,
        )

        self._bind()
        fraud_check = perform_fraud_check(
            fields["customer_name"],
            fields["premium_amount"],
            fields["product_type"],
            rng=rng,
        )
        policy_number = self.generate_policy_number()

        policy = Policy(
            policy_number=policy_number,
            customer_name=fields["customer_name"],
            premium_amount=fields["premium_amount"],
            product_type=fields["product_type"],
            creator_id=self.actor.id,
            fraud_check_passed=fraud_check.passed,
            fraud_check_reason=fraud_check.reason,
            status=PolicyStatus.DRAFT.value,
        )
        self.session.add(policy)
        commit_or_raise(self.session)

        notify(
            "policy_created",
            "New policy created",
            policy_number=policy_number,
            customer=policy.customer_name,
            fraud_check="passed" if fraud_check.passed else "failed",
        )
        if not fraud_check.passed:
            notify(
                "fraud_alert",
                "Policy flagged for fraud review",
                policy_number=policy_number,
                reason=fraud_check.reason,
            )

        return policy

    def update_policy(self, policy_id: str, **updates: Any) -> Policy:
        """
        Edit a draft policy.

        Only customer_name, premium_amount and product_type can change, only
        by the policy's creator, and only while it is a draft.
        """
        unknown = set(updates) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {sorted(unknown)}")
        updates = {k: v for k, v in updates.items() if v is not None}

        policy = self._require_policy(policy_id)
        if not can_edit_policy(self.actor, policy):
            raise PermissionDeniedError(
                "Only the creator can edit a policy, and only while it is a draft"
            )
        if not updates:
            return policy

        for field, value in _clean_fields(**updates).items():
            setattr(policy, field, value)
        commit_or_raise(self.session)

        notify(
            "policy_updated",
            "Policy updated",
            policy_id=policy.id,
            updates={k: str(v) for k, v in updates.items()},
        )
        return policy

    def generate_policy_number(self) -> str:
        """
        Next sequential policy number, e.g. POL-000042.

        Falls back to a timestamp-based number if the sequence lookup fails.
        """
        prefix = settings.policy_number_prefix
        number = None
        try:
            if is_postgres(self.session):
                with self.session.begin_nested():
                    number = self.session.execute(
                        text("SELECT generate_policy_number(:prefix)"),
                        {"prefix": prefix},
                    ).scalar()
            else:
                count = self.session.execute(
                    select(func.count()).select_from(Policy)
                ).scalar()
                number = f"{prefix}{count + 1:06d}"
        except SQLAlchemyError as e:
            logger.warning("policy_number_generation_failed", error=str(e))

        if not number:
            number = f"{prefix}{int(time.time() * 1000)}"
        return number

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_policies(
        self,
        status: Optional[Union[PolicyStatus, str]] = None,
        creator_id: Optional[str] = None,
    ) -> List[Policy]:
        """Policies newest first, optionally filtered by status and creator."""
        self._bind()
        stmt = select(Policy).order_by(Policy.created_at.desc(), Policy.policy_number.desc())
        if status:
            stmt = stmt.where(Policy.status == _status_value(status))
        if creator_id:
            creator_id = normalize_id(creator_id)
            if creator_id is None:
                return []
            stmt = stmt.where(Policy.creator_id == creator_id)
        return list(self.session.execute(stmt).scalars())

    def get_policy(self, policy_id: str) -> Optional[Policy]:
        """Policy by id; None when absent or the id is not a UUID."""
        policy_id = normalize_id(policy_id)
        if policy_id is None:
            return None
        self._bind()
        return self.session.execute(
            select(Policy).where(Policy.id == policy_id)
        ).scalar_one_or_none()

    def pending_count(self) -> int:
        """
        Policies waiting on the actor's role.

        Reviewers see their queue size. Nothing waits on creators, so they get 0.
        """
        role = UserRole(self.actor.role)
        if role not in PENDING_STATUS_FOR_ROLE:
            return 0
        self._bind()
        stmt = (
            select(func.count())
            .select_from(Policy)
            .where(Policy.status == PENDING_STATUS_FOR_ROLE[role].value)
        )
        return self.session.execute(stmt).scalar() or 0

    def status_summary(self) -> Dict[str, int]:
        """Count of policies in each status, zeros included."""
        self._bind()
        rows = self.session.execute(
            select(Policy.status, func.count()).group_by(Policy.status)
        ).all()
        summary = {status.value: 0 for status in PolicyStatus}
        summary.update({status: count for status, count in rows})
        return summary

    # ------------------------------------------------------------------ #
    # Workflow
    # ------------------------------------------------------------------ #

    def submit_policy(self, policy_id: str) -> Policy:
        """
        Send a draft to the underwriter queue.

        Raises:
            NotFoundError: no such policy
            InvalidTransitionError: not a draft, or actor is not a creator
            PermissionDeniedError: actor did not create the policy
        """
        policy = self._require_policy(policy_id)
        transition = resolve_transition(policy.status, self.actor.role, WorkflowAction.SUBMIT)
        if not can_submit_policy(self.actor, policy):
            raise PermissionDeniedError("Only the policy's creator can submit it")

        policy = self._apply(policy, transition, comments="")

        notify(
            "policy_submitted",
            "Policy submitted for approval",
            policy_number=policy.policy_number,
            customer=policy.customer_name,
            next_step="Underwriter review required",
        )
        notify(
            "approval_required",
            "Underwriter action required",
            policy_number=policy.policy_number,
            role=UserRole.UNDERWRITER.value,
        )
        return policy

    def process_approval(
        self,
        policy_id: str,
        action: Union[WorkflowAction, str],
        comments: str = "",
    ) -> Policy:
        """
        Approve or reject a pending policy.

        Args:
            policy_id: Policy ID
            action: approve or reject
            comments: Optional for approve, required for reject

        Raises:
            NotFoundError: no such policy
            ValidationError: action is neither approve nor reject
            InvalidTransitionError: status and actor role do not match
            CommentRequiredError: reject without comments
        """
        action = _workflow_action(action)
        if action not in (WorkflowAction.APPROVE, WorkflowAction.REJECT):
            raise ValidationError("Approval action must be 'approve' or 'reject'")

        policy = self._require_policy(policy_id)
        transition = resolve_transition(policy.status, self.actor.role, action, comments)

        policy = self._apply(policy, transition, comments=comments)

        if transition.new_status == PolicyStatus.APPROVED:
            notify(
                "policy_approved",
                "Policy fully approved",
                policy_number=policy.policy_number,
                customer=policy.customer_name,
            )
        elif transition.new_status == PolicyStatus.PENDING_MANAGER:
            notify(
                "policy_approved",
                "Underwriter approved policy",
                policy_number=policy.policy_number,
                next_step="Manager review required",
            )
            notify(
                "approval_required",
                "Manager action required",
                policy_number=policy.policy_number,
                role=UserRole.MANAGER.value,
            )
        else:
            notify(
                "policy_rejected",
                "Policy rejected",
                policy_number=policy.policy_number,
                rejected_by=self.actor.role,
                reason=comments,
            )
        return policy

    def _apply(self, policy: Policy, transition, comments: str) -> Policy:
        """Move the status and append the audit entry in one transaction."""
        self._bind()
        result = self.session.execute(
            update(Policy)
            .where(
                Policy.id == policy.id,
                Policy.status == transition.previous_status.value,
            )
            .values(
                status=transition.new_status.value,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise PermissionDeniedError(
                f"Policy {policy.policy_number} could not be moved to "
                f"{transition.new_status.value}; it changed or is not writable"
            )

        self.log_approval(
            policy_id=policy.id,
            action=transition.log_action,
            role=transition.role.value,
            comments=comments,
            previous_status=transition.previous_status,
            new_status=transition.new_status,
        )
        commit_or_raise(self.session)
        self._bind()
        self.session.refresh(policy)

        logger.info(
            "policy_transition",
            policy_id=policy.id,
            actor_id=self.actor.id,
            from_status=transition.previous_status.value,
            to_status=transition.new_status.value,
        )
        return policy

    # ------------------------------------------------------------------ #
    # Audit log
    # ------------------------------------------------------------------ #

    def log_approval(
        self,
        policy_id: str,
        action: Union[ApprovalAction, str],
        role: str,
        comments: str,
        previous_status: Union[PolicyStatus, str],
        new_status: Union[PolicyStatus, str],
    ) -> ApprovalLog:
        """
        Append an audit entry for the actor.

        Added to the current transaction; the caller commits.
        """
        entry = ApprovalLog(
            policy_id=str(policy_id),
            approver_id=self.actor.id,
            action=ApprovalAction(action).value,
            role=role,
            comments=comments or "",
            previous_status=_status_value(previous_status),
            new_status=_status_value(new_status),
        )
        self.session.add(entry)
        return entry

    def get_approval_logs(self, policy_id: str) -> List[Dict[str, Any]]:
        """
        Audit trail for a policy, newest first.

        Each entry carries the approver's name and role.
        """
        policy_id = normalize_id(policy_id)
        if policy_id is None:
            return []
        self._bind()
        rows = self.session.execute(
            select(ApprovalLog, UserProfile.full_name, UserProfile.role)
            .join(UserProfile, ApprovalLog.approver_id == UserProfile.id)
            .where(ApprovalLog.policy_id == policy_id)
            .order_by(ApprovalLog.created_at.desc())
        ).all()

        return [
            {
                "id": log.id,
                "policy_id": log.policy_id,
                "approver_id": log.approver_id,
                "action": log.action,
                "role": log.role,
                "comments": log.comments or "",
                "previous_status": log.previous_status,
                "new_status": log.new_status,
                "created_at": log.created_at,
                "approver": {"full_name": full_name, "role": approver_role},
            }
            for log, full_name, approver_role in rows
        ]

    def _require_policy(self, policy_id: str) -> Policy:
        policy = self.get_policy(policy_id)
        if policy is None:
            raise NotFoundError("Policy not found")
        return policy


def _status_value(status: Union[PolicyStatus, str]) -> str:
    try:
        return PolicyStatus(status).value
    except ValueError:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {[s.value for s in PolicyStatus]}"
        )


def _workflow_action(action: Union[WorkflowAction, str]) -> WorkflowAction:
    # Accept the audit-log spelling too ("approved" / "rejected")
    aliases = {"approved": WorkflowAction.APPROVE, "rejected": WorkflowAction.REJECT}
    if isinstance(action, str) and action in aliases:
        return aliases[action]
    try:
        return WorkflowAction(action)
    except ValueError:
        raise ValidationError(f"Unknown workflow action '{action}'")


def _clean_fields(**fields: Any) -> Dict[str, Any]:
    """Validate editable policy fields."""
    cleaned: Dict[str, Any] = {}
    for name in ("customer_name", "product_type"):
        if name in fields:
            value = (fields[name] or "").strip()
            if not value:
                raise ValidationError(f"{name} is required")
            cleaned[name] = value
    if "premium_amount" in fields:
        try:
            premium = Decimal(str(fields["premium_amount"]))
        except (InvalidOperation, ValueError):
            raise ValidationError("premium_amount must be a number")
        if not premium.is_finite():
            raise ValidationError("premium_amount must be a finite number")
        premium = premium.quantize(Decimal("0.01"))
        if premium <= 0:
            raise ValidationError("premium_amount must be greater than 0")
        if premium > MAX_PREMIUM:
            raise ValidationError(f"premium_amount must not exceed {MAX_PREMIUM}")
        cleaned["premium_amount"] = premium
    return cleaned
