"""Challenge records and their status transitions.

A challenge is a one-to-one invitation to play. Either party may propose a
new time, which puts the challenge back to pending and makes the other
party the one who can accept it.
"""

from __future__ import annotations

from pickupboard.core.constants import (
    CHALLENGE_ACCEPTED,
    CHALLENGE_DISMISSED,
    CHALLENGE_PENDING,
)
from pickupboard.core.types import FirestoreDocument
from pickupboard.errors import AuthorizationError, ValidationError
from pickupboard.utils import format_time_label, names_equal, normalize_name


class Challenge(FirestoreDocument, total=False):
    """A challenge document in the ``challenges`` collection."""

    fromName: str
    fromNameLower: str
    toName: str
    toNameLower: str
    sport: str
    timeRaw: str
    timeLabel: str
    status: str
    lastUpdatedBy: str


def new_challenge(
    from_name: str,
    to_name: str,
    sport: str,
    time_raw: str | None,
    time_zone: str | None = None,
    require_time: bool = True,
) -> Challenge:
    """Build a pending challenge from ``from_name`` to ``to_name``."""
    from_name = (from_name or "").strip()
    to_name = (to_name or "").strip()
    sport = (sport or "").strip()
    time_raw = (time_raw or "").strip()

    if not from_name or not to_name:
        raise ValidationError("Both players are required.")
    if names_equal(from_name, to_name):
        raise ValidationError("You cannot challenge yourself.")
    if not sport:
        raise ValidationError("Pick a sport.")
    if require_time and not time_raw:
        raise ValidationError("Pick a time.")

    return Challenge(
        fromName=from_name,
        fromNameLower=normalize_name(from_name),
        toName=to_name,
        toNameLower=normalize_name(to_name),
        sport=sport,
        timeRaw=time_raw,
        timeLabel=format_time_label(time_raw, time_zone) if time_raw else "",
        status=CHALLENGE_PENDING,
        lastUpdatedBy=from_name,
    )


def is_party(challenge: Challenge, name: str | None) -> bool:
    """Whether ``name`` is the sender or the recipient."""
    return names_equal(challenge.get("fromName"), name) or names_equal(
        challenge.get("toName"), name
    )


def _require_party(challenge: Challenge, actor: str) -> None:
    if not is_party(challenge, actor):
        raise AuthorizationError("This challenge is not yours.")


def _require_pending(challenge: Challenge, action: str) -> None:
    if challenge.get("status") != CHALLENGE_PENDING:
        raise ValidationError(f"Only pending challenges can be {action}.")


def accept(challenge: Challenge, actor: str) -> Challenge:
    """Accept the latest proposal. Only the party who did not make it may."""
    _require_party(challenge, actor)
    _require_pending(challenge, "accepted")
    if names_equal(challenge.get("lastUpdatedBy"), actor):
        raise AuthorizationError("Waiting for the other player to respond.")
    return Challenge(**{**challenge, "status": CHALLENGE_ACCEPTED})


def dismiss(challenge: Challenge, actor: str) -> Challenge:
    """Dismiss a pending challenge."""
    _require_party(challenge, actor)
    _require_pending(challenge, "dismissed")
    return Challenge(**{**challenge, "status": CHALLENGE_DISMISSED})


def change_time(
    challenge: Challenge,
    actor: str,
    time_raw: str,
    time_zone: str | None = None,
) -> Challenge:
    """Propose a new time. The challenge goes back to pending."""
    _require_party(challenge, actor)
    time_raw = (time_raw or "").strip()
    if not time_raw:
        raise ValidationError("Pick a time.")
    return Challenge(
        **{
            **challenge,
            "timeRaw": time_raw,
            "timeLabel": format_time_label(time_raw, time_zone),
            "status": CHALLENGE_PENDING,
            "lastUpdatedBy": actor,
        }
    )
