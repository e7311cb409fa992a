"""Service layer for challenges."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from pickupboard.core.constants import CHALLENGES_COLLECTION
from pickupboard.errors import AuthorizationError, NotFoundError
from pickupboard.utils import normalize_name, now_utc

from . import models
from .models import Challenge

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class ChallengeService:
    """Service class for challenge operations."""

    @staticmethod
    def _to_challenge(doc: Any) -> Challenge:
        data = cast(Challenge, doc.to_dict() or {})
        data["id"] = doc.id
        return data

    @staticmethod
    def create(
        db: Client,
        from_name: str,
        to_name: str,
        sport: str,
        time_raw: str | None,
        time_zone: str | None = None,
        require_time: bool = True,
    ) -> Challenge:
        """Send a challenge."""
        challenge = models.new_challenge(
            from_name, to_name, sport, time_raw, time_zone, require_time
        )
        challenge["createdAt"] = now_utc()
        _, doc_ref = db.collection(CHALLENGES_COLLECTION).add(dict(challenge))
        return ChallengeService._to_challenge(doc_ref.get())

    @staticmethod
    def get(db: Client, challenge_id: str, name: str) -> Challenge:
        """Fetch a challenge that ``name`` is part of."""
        doc = db.collection(CHALLENGES_COLLECTION).document(challenge_id).get()
        if not doc.exists:
            raise NotFoundError("Challenge not found.")
        challenge = ChallengeService._to_challenge(doc)
        if not models.is_party(challenge, name):
            raise AuthorizationError("This challenge is not yours.")
        return challenge

    @staticmethod
    def _apply(
        db: Client,
        challenge_id: str,
        actor: str,
        transition: Callable[[Challenge], Challenge],
    ) -> Challenge:
        challenge = ChallengeService.get(db, challenge_id, actor)
        updated = transition(challenge)
        changes = {
            key: value
            for key, value in updated.items()
            if key != "id" and challenge.get(key) != value
        }
        if changes:
            db.collection(CHALLENGES_COLLECTION).document(challenge_id).update(changes)
        return updated

    @staticmethod
    def accept(db: Client, challenge_id: str, actor: str) -> Challenge:
        """Accept a challenge on behalf of ``actor``."""
        return ChallengeService._apply(
            db, challenge_id, actor, lambda c: models.accept(c, actor)
        )

    @staticmethod
    def dismiss(db: Client, challenge_id: str, actor: str) -> Challenge:
        """Dismiss a challenge on behalf of ``actor``."""
        return ChallengeService._apply(
            db, challenge_id, actor, lambda c: models.dismiss(c, actor)
        )

    @staticmethod
    def change_time(
        db: Client,
        challenge_id: str,
        actor: str,
        time_raw: str,
        time_zone: str | None = None,
    ) -> Challenge:
        """Propose a new time on behalf of ``actor``."""
        return ChallengeService._apply(
            db,
            challenge_id,
            actor,
            lambda c: models.change_time(c, actor, time_raw, time_zone),
        )

    @staticmethod
    def list_for_user(db: Client, name: str) -> dict[str, list[Challenge]]:
        """Challenges the user sent and received."""
        key = normalize_name(name)
        challenges = db.collection(CHALLENGES_COLLECTION)
        sent = challenges.where(
            filter=firestore.FieldFilter("fromNameLower", "==", key)
        ).stream()
        received = challenges.where(
            filter=firestore.FieldFilter("toNameLower", "==", key)
        ).stream()
        return {
            "sent": [ChallengeService._to_challenge(doc) for doc in sent],
            "received": [ChallengeService._to_challenge(doc) for doc in received],
        }
