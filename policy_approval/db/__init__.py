# Database module
from .engine import get_engine, get_session, session_scope, bind_actor, init_db, SessionLocal, Base
from .models import UserProfile, Policy, ApprovalLog

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "bind_actor",
    "init_db",
    "SessionLocal",
    "Base",
    "UserProfile",
    "Policy",
    "ApprovalLog",
]
