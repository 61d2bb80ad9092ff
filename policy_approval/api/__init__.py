"""API routes package."""

from .routes_profiles import router as profiles_router
from .routes_policies import router as policies_router

__all__ = [
    "profiles_router",
    "policies_router",
]
