"""Service layer for user profiles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, cast

from pickupboard.core.constants import (
    GOOGLE_ACCESS_TOKEN,
    GOOGLE_REFRESH_TOKEN,
    GOOGLE_TOKEN_EXPIRY,
    USERS_COLLECTION,
)
from pickupboard.errors import AuthorizationError, NotFoundError, ValidationError
from pickupboard.utils import normalize_name

from .models import UserProfile

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


class UserService:
    """Service class for profile reads and writes."""

    @staticmethod
    def _profile_ref(db: Client, name: str) -> DocumentReference:
        key = normalize_name(name)
        if not key:
            raise ValidationError("A display name is required.")
        return db.collection(USERS_COLLECTION).document(key)

    @staticmethod
    def get_profile(db: Client, name: str) -> UserProfile | None:
        """Fetch a profile by display name (any casing)."""
        doc = UserService._profile_ref(db, name).get()
        if not doc.exists:
            return None
        return cast(UserProfile, doc.to_dict() or {})

    @staticmethod
    def ensure_profile(
        db: Client, display_name: str, auth_uid: Optional[str] = None
    ) -> UserProfile:
        """Create the profile on first sign-in, or merge the current name.

        The first identity-provider account to sign in with a name owns it.

        Raises:
            AuthorizationError: If another account already owns the name.
        """
        display_name = (display_name or "").strip()
        profile_ref = UserService._profile_ref(db, display_name)
        existing = profile_ref.get()
        data: dict[str, Any] = {
            "displayName": display_name,
            "displayNameLower": normalize_name(display_name),
        }
        if auth_uid:
            owner = (existing.to_dict() or {}).get("authUid") if existing.exists else None
            if owner and owner != auth_uid:
                raise AuthorizationError(f"The name {display_name} is already taken.")
            data["authUid"] = auth_uid
        profile_ref.set(data, merge=True)
        return cast(UserProfile, profile_ref.get().to_dict() or {})

    @staticmethod
    def store_tokens(
        db: Client,
        name: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        expiry: Optional[int] = None,
    ) -> None:
        """Store a freshly obtained Google OAuth credential on the profile.

        Raises:
            ValidationError: If no access token is given.
            NotFoundError: If the profile does not exist.
        """
        if not access_token:
            raise ValidationError("An access token is required.")
        profile_ref = UserService._profile_ref(db, name)
        if not profile_ref.get().exists:
            raise NotFoundError(f"User {name} not found.")
        profile_ref.update(
            {
                GOOGLE_ACCESS_TOKEN: access_token,
                GOOGLE_REFRESH_TOKEN: refresh_token or None,
                GOOGLE_TOKEN_EXPIRY: expiry or None,
            }
        )

    @staticmethod
    def update_access_token(
        db: Client, name: str, access_token: str, expiry: Optional[int]
    ) -> None:
        """Record a refreshed access token."""
        UserService._profile_ref(db, name).update(
            {GOOGLE_ACCESS_TOKEN: access_token, GOOGLE_TOKEN_EXPIRY: expiry}
        )

    @staticmethod
    def clear_tokens(db: Client, name: str) -> None:
        """Forget a credential Google no longer accepts."""
        UserService._profile_ref(db, name).update(
            {
                GOOGLE_ACCESS_TOKEN: None,
                GOOGLE_REFRESH_TOKEN: None,
                GOOGLE_TOKEN_EXPIRY: None,
            }
        )

    @staticmethod
    def has_calendar_access(profile: UserProfile | None) -> bool:
        """Whether the profile holds any usable Google credential."""
        if not profile:
            return False
        return bool(
            profile.get(GOOGLE_ACCESS_TOKEN) or profile.get(GOOGLE_REFRESH_TOKEN)
        )
