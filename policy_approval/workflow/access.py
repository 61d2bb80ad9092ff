# policy_approval/workflow/access.py
"""
Access predicates for policies and profiles.

These mirror the row-level security policies in
db/migrations/001_policy_approval.sql so the same rules hold on
databases without RLS.
"""

from .models import PolicyStatus, UserRole


def can_create_policy(actor) -> bool:
    return actor.role == UserRole.CREATOR.value


def can_edit_policy(actor, policy) -> bool:
    """Creators edit only their own drafts."""
    return (
        actor.role == UserRole.CREATOR.value
        and policy.creator_id == actor.id
        and policy.status == PolicyStatus.DRAFT.value
    )


def can_submit_policy(actor, policy) -> bool:
    return can_edit_policy(actor, policy)


def can_update_profile(actor, profile) -> bool:
    return actor.id == profile.id
