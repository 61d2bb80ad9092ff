# policy_approval/db/models.py
"""
ORM tables for profiles, policies and the approval audit log.

The PostgreSQL migration in db/migrations is the source of truth in
production; these definitions carry the same columns and check constraints
so the schema can be created on any SQLAlchemy dialect.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .engine import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def normalize_id(value: Any) -> Optional[str]:
    """
    Canonical string form of a row id, or None if it is not a UUID.

    Every id column is uuid in PostgreSQL, so anything else can never match.
    """
    if isinstance(value, UUID):
        return str(value)
    try:
        return str(UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        return None


POLICY_STATUSES = ("draft", "pending_underwriter", "pending_manager", "approved", "rejected")
USER_ROLES = ("creator", "underwriter", "manager")
LOG_ACTIONS = ("submitted", "approved", "rejected")

# Native uuid on PostgreSQL, canonical strings in Python on every dialect
RowId = Uuid(as_uuid=False)


def _in(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class UserProfile(Base):
    __tablename__ = "user_profiles"
    __table_args__ = (
        CheckConstraint(_in("role", USER_ROLES), name="user_profiles_role_check"),
    )

    id: Mapped[str] = mapped_column(RowId, primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    policies: Mapped[list["Policy"]] = relationship("Policy", back_populates="creator")


class Policy(Base):
    __tablename__ = "policies"
    __table_args__ = (
        CheckConstraint("premium_amount > 0", name="policies_premium_amount_check"),
        CheckConstraint(_in("status", POLICY_STATUSES), name="policies_status_check"),
    )

    id: Mapped[str] = mapped_column(RowId, primary_key=True, default=_new_id)
    policy_number: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    premium_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    product_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    fraud_check_passed: Mapped[bool] = mapped_column(Boolean, default=True)
    fraud_check_reason: Mapped[str] = mapped_column(Text, default="")
    creator_id: Mapped[str] = mapped_column(RowId, ForeignKey("user_profiles.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    creator: Mapped["UserProfile"] = relationship("UserProfile", back_populates="policies")
    approval_logs: Mapped[list["ApprovalLog"]] = relationship(
        "ApprovalLog", back_populates="policy", cascade="all, delete-orphan"
    )


class ApprovalLog(Base):
    __tablename__ = "approval_logs"
    __table_args__ = (
        CheckConstraint(_in("action", LOG_ACTIONS), name="approval_logs_action_check"),
    )

    id: Mapped[str] = mapped_column(RowId, primary_key=True, default=_new_id)
    policy_id: Mapped[str] = mapped_column(
        RowId, ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approver_id: Mapped[str] = mapped_column(RowId, ForeignKey("user_profiles.id"), nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text, default="")
    previous_status: Mapped[str] = mapped_column(Text, nullable=False)
    new_status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    policy: Mapped["Policy"] = relationship("Policy", back_populates="approval_logs")
    approver: Mapped["UserProfile"] = relationship("UserProfile")
