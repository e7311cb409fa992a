"""User profiles keyed by lowercase display name."""

from .models import UserProfile
from .services import UserService

__all__ = ["UserProfile", "UserService"]
