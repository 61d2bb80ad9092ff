# Services - business operations over the database
from .profiles import ProfileService
from .policies import PolicyService

__all__ = ["ProfileService", "PolicyService"]
