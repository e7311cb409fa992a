"""Data models for user profiles."""

from __future__ import annotations

from typing import Optional

from pickupboard.core.types import FirestoreDocument


class UserProfile(FirestoreDocument, total=False):
    """A user document in Firestore, stored under ``users/<displayNameLower>``."""

    displayName: str
    displayNameLower: str
    # Identity-provider uid that first claimed this name.
    authUid: str
    googleAccessToken: Optional[str]
    googleRefreshToken: Optional[str]
    # Epoch milliseconds.
    googleTokenExpiry: Optional[int]
