"""Detect confirmation transitions between two snapshots of the board."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field

from pickupboard.utils import normalize_name

from .models import Event, EventsBySport


class TransitionKind(str, enum.Enum):
    """What happened to an event between two snapshots."""

    BECAME_CONFIRMED = "became_confirmed"
    BECAME_UNCONFIRMED = "became_unconfirmed"
    ROSTER_CHANGED_WHILE_CONFIRMED = "roster_changed_while_confirmed"


@dataclass(frozen=True)
class Transition:
    """A detected change to one event."""

    sport_id: str
    event: Event
    kind: TransitionKind
    previous: Event | None = None
    joined: frozenset[str] = field(default_factory=frozenset)
    left: frozenset[str] = field(default_factory=frozenset)


def _roster(event: Event | None) -> dict[str, str]:
    """Map lowercase name to display name."""
    if event is None:
        return {}
    return {normalize_name(name): name for name in event.participants}


def diff_rosters(
    previous: Event | None, current: Event
) -> tuple[frozenset[str], frozenset[str]]:
    """Return (joined, left) display names, compared case-insensitively."""
    before = _roster(previous)
    after = _roster(current)
    joined = frozenset(after[key] for key in after.keys() - before.keys())
    left = frozenset(before[key] for key in before.keys() - after.keys())
    return joined, left


def classify(previous: Event | None, current: Event) -> TransitionKind | None:
    """Decide which transition, if any, an event went through."""
    was_confirmed = previous is not None and previous.is_confirmed
    is_confirmed = current.is_confirmed

    if not was_confirmed and is_confirmed:
        return TransitionKind.BECAME_CONFIRMED
    if was_confirmed and not is_confirmed:
        return TransitionKind.BECAME_UNCONFIRMED
    if is_confirmed and _roster(previous).keys() != _roster(current).keys():
        return TransitionKind.ROSTER_CHANGED_WHILE_CONFIRMED
    return None


def detect_transitions(
    previous: EventsBySport | None, current: EventsBySport
) -> Iterator[Transition]:
    """Yield the transitions between two snapshots.

    Nothing is yielded when there is no previous snapshot, so the first
    snapshot after startup never triggers calendar work.
    """
    if previous is None:
        return

    for sport_id, events in current.items():
        before = {event.id: event for event in previous.get(sport_id) or []}
        for event in events:
            prior = before.get(event.id)
            kind = classify(prior, event)
            if kind is None:
                continue
            joined, left = diff_rosters(prior, event)
            yield Transition(
                sport_id=sport_id,
                event=event,
                kind=kind,
                previous=prior,
                joined=joined,
                left=left,
            )
