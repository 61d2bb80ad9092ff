# policy_approval/api/routes_profiles.py
"""
Profile API routes.

Signup and profile lookup.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db.engine import get_session
from ..db.models import UserProfile
from ..services.profiles import ProfileService
from .deps import get_current_profile, run_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


class SignupRequest(BaseModel):
    """Request to create a profile."""
    email: str
    full_name: str
    role: str  # creator, underwriter or manager
    user_id: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    full_name: str


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    created_at: Optional[datetime] = None


def _profile_response(profile: UserProfile) -> ProfileResponse:
    return ProfileResponse(
        id=str(profile.id),
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role,
        created_at=profile.created_at,
    )


@router.post("", response_model=ProfileResponse, status_code=201)
async def signup(
    request: SignupRequest,
    session: Session = Depends(get_session),
) -> ProfileResponse:
    """
    Create a profile.

    The role is fixed from here on.
    """
    profile = run_service(
        ProfileService(session).create_profile,
        email=request.email,
        full_name=request.full_name,
        role=request.role,
        user_id=request.user_id,
    )
    return _profile_response(profile)


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    actor: UserProfile = Depends(get_current_profile),
    session: Session = Depends(get_session),
) -> List[ProfileResponse]:
    """All profiles, for workflow visibility."""
    profiles = run_service(ProfileService(session).list_profiles, actor.id)
    return [_profile_response(p) for p in profiles]


@router.get("/me", response_model=ProfileResponse)
async def get_me(actor: UserProfile = Depends(get_current_profile)) -> ProfileResponse:
    return _profile_response(actor)


@router.patch("/me", response_model=ProfileResponse)
async def update_me(
    request: UpdateProfileRequest,
    actor: UserProfile = Depends(get_current_profile),
    session: Session = Depends(get_session),
) -> ProfileResponse:
    """Change the caller's display name."""
    profile = run_service(ProfileService(session).update_profile, actor, request.full_name)
    return _profile_response(profile)


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: str,
    actor: UserProfile = Depends(get_current_profile),
    session: Session = Depends(get_session),
) -> ProfileResponse:
    profile = run_service(ProfileService(session).get_profile, profile_id, actor_id=actor.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _profile_response(profile)
