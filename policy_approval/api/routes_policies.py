# policy_approval/api/routes_policies.py
"""
Policy API routes.

Endpoints for creating policies and moving them through the approval chain.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..db.models import Policy
from ..services.policies import PolicyService
from ..workflow.access import can_submit_policy
from ..workflow.models import PRODUCT_TYPES, WorkflowAction
from ..workflow.state_machine import get_valid_actions
from .deps import get_policy_service, run_service

router = APIRouter(prefix="/policies", tags=["policies"])


class CreatePolicyRequest(BaseModel):
    """Request to create a draft policy."""
    customer_name: str = Field(min_length=1)
    premium_amount: float = Field(gt=0)
    product_type: str = Field(min_length=1)


class UpdatePolicyRequest(BaseModel):
    """Fields a creator may change on a draft."""
    customer_name: Optional[str] = None
    premium_amount: Optional[float] = Field(default=None, gt=0)
    product_type: Optional[str] = None


class ApprovalRequest(BaseModel):
    comments: str = ""


class PolicyResponse(BaseModel):
    id: str
    policy_number: str
    customer_name: str
    premium_amount: float
    product_type: str
    status: str
    fraud_check_passed: bool
    fraud_check_reason: str
    creator_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    available_actions: Optional[List[str]] = None


class ApprovalLogResponse(BaseModel):
    id: str
    policy_id: str
    approver_id: str
    action: str
    role: str
    comments: str
    previous_status: str
    new_status: str
    created_at: Optional[datetime] = None
    approver: Dict[str, Any]


def _policy_response(policy: Policy, service: Optional[PolicyService] = None) -> PolicyResponse:
    available = None
    if service is not None:
        available = [a.value for a in get_valid_actions(policy.status, service.actor.role)]
        if WorkflowAction.SUBMIT.value in available and not can_submit_policy(service.actor, policy):
            available.remove(WorkflowAction.SUBMIT.value)

    return PolicyResponse(
        id=str(policy.id),
        policy_number=policy.policy_number,
        customer_name=policy.customer_name,
        premium_amount=float(policy.premium_amount),
        product_type=policy.product_type,
        status=policy.status,
        fraud_check_passed=bool(policy.fraud_check_passed),
        fraud_check_reason=policy.fraud_check_reason or "",
        creator_id=str(policy.creator_id),
        created_at=policy.created_at,
        updated_at=policy.updated_at,
        available_actions=available,
    )


@router.get("", response_model=List[PolicyResponse])
async def list_policies(
    status: Optional[str] = None,
    creator_id: Optional[str] = None,
    service: PolicyService = Depends(get_policy_service),
) -> List[PolicyResponse]:
    """
    List policies, newest first.

    Args:
        status: Optional status filter
        creator_id: Optional creator filter
    """
    policies = run_service(service.get_policies, status=status, creator_id=creator_id)
    return [_policy_response(p) for p in policies]


@router.get("/summary")
async def get_summary(
    service: PolicyService = Depends(get_policy_service),
) -> Dict[str, Any]:
    """Counts per status and the caller's pending queue size."""
    return {
        "by_status": run_service(service.status_summary),
        "pending_for_me": run_service(service.pending_count),
        "role": service.actor.role,
    }


@router.get("/product-types")
async def list_product_types() -> Dict[str, List[str]]:
    return {"product_types": list(PRODUCT_TYPES)}


@router.post("", response_model=PolicyResponse, status_code=201)
async def create_policy(
    request: CreatePolicyRequest,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    """
    Create a draft policy.

    The fraud check result is stored on the policy; creation is never
    blocked by it.
    """
    policy = run_service(
        service.create_policy,
        customer_name=request.customer_name,
        premium_amount=request.premium_amount,
        product_type=request.product_type,
    )
    return _policy_response(policy, service)


@router.get("/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: str,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    policy = run_service(service.get_policy, policy_id)
    if policy is None:
        raise HTTPException(status_code=404, detail="Policy not found")
    return _policy_response(policy, service)


@router.patch("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: str,
    request: UpdatePolicyRequest,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    """Edit a draft. Creator only."""
    policy = run_service(service.update_policy, policy_id, **request.model_dump(exclude_none=True))
    return _policy_response(policy, service)


@router.post("/{policy_id}/submit", response_model=PolicyResponse)
async def submit_policy(
    policy_id: str,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    """Send a draft to the underwriter."""
    policy = run_service(service.submit_policy, policy_id)
    return _policy_response(policy, service)


@router.post("/{policy_id}/approve", response_model=PolicyResponse)
async def approve_policy(
    policy_id: str,
    request: Optional[ApprovalRequest] = None,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    comments = request.comments if request else ""
    policy = run_service(service.process_approval, policy_id, WorkflowAction.APPROVE, comments)
    return _policy_response(policy, service)


@router.post("/{policy_id}/reject", response_model=PolicyResponse)
async def reject_policy(
    policy_id: str,
    request: ApprovalRequest,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    """Reject a pending policy. A non-empty comment is required."""
    policy = run_service(service.process_approval, policy_id, WorkflowAction.REJECT, request.comments)
    return _policy_response(policy, service)


@router.get("/{policy_id}/logs", response_model=List[ApprovalLogResponse])
async def get_approval_logs(
    policy_id: str,
    service: PolicyService = Depends(get_policy_service),
) -> List[ApprovalLogResponse]:
    """Audit trail, newest first."""
    if run_service(service.get_policy, policy_id) is None:
        raise HTTPException(status_code=404, detail="Policy not found")
    return [ApprovalLogResponse(**entry) for entry in run_service(service.get_approval_logs, policy_id)]
