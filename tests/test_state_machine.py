# tests/test_state_machine.py
"""
Test the approval state machine.

Verifies the transition table, the comment rule for rejections and that
no transition moves a policy backwards.
"""

import itertools

import pytest

from policy_approval.errors import CommentRequiredError, InvalidTransitionError
from policy_approval.workflow.models import (
    ApprovalAction,
    PolicyStatus,
    UserRole,
    WorkflowAction,
)
from policy_approval.workflow.state_machine import (
    TRANSITIONS,
    get_valid_actions,
    is_forward,
    is_terminal,
    resolve_transition,
)


class TestTransitionTable:
    """Tests for the five allowed transitions."""

    @pytest.mark.parametrize(
        "status,role,action,expected",
        [
            ("draft", "creator", "submit", "pending_underwriter"),
            ("pending_underwriter", "underwriter", "approve", "pending_manager"),
            ("pending_underwriter", "underwriter", "reject", "rejected"),
            ("pending_manager", "manager", "approve", "approved"),
            ("pending_manager", "manager", "reject", "rejected"),
        ],
    )
    def test_allowed_transitions(self, status, role, action, expected):
        """Every row of the table resolves to its next status."""
        transition = resolve_transition(status, role, action, comments="looks off")

        assert transition.previous_status == PolicyStatus(status)
        assert transition.new_status == PolicyStatus(expected)
        assert transition.role == UserRole(role)

    def test_table_has_exactly_five_entries(self):
        assert len(TRANSITIONS) == 5

    def test_everything_else_is_invalid(self):
        """Any combination outside the table raises InvalidTransitionError."""
        for status, role, action in itertools.product(PolicyStatus, UserRole, WorkflowAction):
            if (status, role, action) in TRANSITIONS:
                continue
            with pytest.raises(InvalidTransitionError):
                resolve_transition(status, role, action, comments="reason")

    def test_wrong_role_cannot_approve(self):
        """A manager cannot act on a policy waiting for the underwriter."""
        with pytest.raises(InvalidTransitionError):
            resolve_transition("pending_underwriter", "manager", "approve")

    def test_unknown_values_are_invalid(self):
        with pytest.raises(InvalidTransitionError) as exc:
            resolve_transition("archived", "creator", "submit")

        assert exc.value.status == "archived"

    def test_log_action_names(self):
        """Submit/approve/reject are logged as submitted/approved/rejected."""
        assert resolve_transition("draft", "creator", "submit").log_action == ApprovalAction.SUBMITTED
        assert resolve_transition("pending_manager", "manager", "approve").log_action == ApprovalAction.APPROVED
        assert (
            resolve_transition("pending_manager", "manager", "reject", "no").log_action
            == ApprovalAction.REJECTED
        )


class TestRejectionComments:
    """Rejection requires a non-empty comment; approval does not."""

    @pytest.mark.parametrize("comments", [None, "", "   ", "\n\t"])
    def test_reject_without_comment_refused(self, comments):
        with pytest.raises(CommentRequiredError):
            resolve_transition("pending_underwriter", "underwriter", "reject", comments)

    def test_reject_with_comment_allowed(self):
        transition = resolve_transition("pending_manager", "manager", "reject", "Missing documents")
        assert transition.new_status == PolicyStatus.REJECTED

    def test_approve_comment_optional(self):
        transition = resolve_transition("pending_underwriter", "underwriter", "approve")
        assert transition.new_status == PolicyStatus.PENDING_MANAGER

    def test_invalid_transition_checked_before_comment(self):
        """A wrong-role rejection fails as a transition error, not a comment error."""
        with pytest.raises(InvalidTransitionError):
            resolve_transition("pending_manager", "underwriter", "reject", "")


class TestMonotonicity:
    """Status only moves forward or into terminal rejected."""

    def test_every_transition_moves_forward(self):
        for (status, _role, _action), new_status in TRANSITIONS.items():
            assert is_forward(status, new_status), f"{status} -> {new_status}"

    def test_terminal_statuses_have_no_actions(self):
        for status in (PolicyStatus.APPROVED, PolicyStatus.REJECTED):
            assert is_terminal(status)
            for role in UserRole:
                assert get_valid_actions(status, role) == []

    def test_backwards_and_skips_not_forward(self):
        assert not is_forward("pending_manager", "pending_underwriter")
        assert not is_forward("pending_underwriter", "draft")
        assert not is_forward("draft", "pending_manager")
        assert not is_forward("draft", "rejected")
        assert not is_forward("rejected", "draft")


class TestValidActions:
    """Tests for the actions offered to each role."""

    def test_creator_on_draft(self):
        assert get_valid_actions("draft", "creator") == [WorkflowAction.SUBMIT]

    def test_underwriter_on_pending_underwriter(self):
        actions = get_valid_actions("pending_underwriter", "underwriter")
        assert set(actions) == {WorkflowAction.APPROVE, WorkflowAction.REJECT}

    def test_roles_without_actions(self):
        assert get_valid_actions("pending_underwriter", "manager") == []
        assert get_valid_actions("draft", "underwriter") == []
        assert get_valid_actions("draft", "nobody") == []
