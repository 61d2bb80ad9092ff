# policy_approval/api/deps.py
"""
Shared route dependencies.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ..db.engine import get_session
from ..db.models import UserProfile
from ..errors import PolicyApprovalError
from ..logging import get_api_logger
from ..services.policies import PolicyService
from ..services.profiles import ProfileService

logger = get_api_logger()


async def get_current_profile(
    x_user_id: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
) -> UserProfile:
    """
    Resolve the acting user from the X-User-ID header.

    Identity is established upstream; this only maps the ID to a profile.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")

    profile = run_service(ProfileService(session).get_profile, x_user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return profile


async def get_policy_service(
    actor: UserProfile = Depends(get_current_profile),
    session: Session = Depends(get_session),
) -> PolicyService:
    return PolicyService(session, actor)


def to_http_exception(error: PolicyApprovalError) -> HTTPException:
    """Map a service error to its HTTP status, keeping the message."""
    return HTTPException(status_code=error.status_code, detail=str(error))


def run_service(operation, *args, **kwargs):
    """
    Call a service operation, translating service errors.

    Anything unexpected is logged with its traceback and becomes a 500.
    """
    try:
        return operation(*args, **kwargs)
    except PolicyApprovalError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Service operation failed", operation=operation.__name__)
        raise HTTPException(status_code=500, detail="Internal server error")
