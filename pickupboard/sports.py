"""The static sport catalog."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from .errors import NotFoundError


@dataclass(frozen=True)
class Sport:
    """A sport students can organize sessions for."""

    id: str
    name: str
    tagline: str
    locationHint: str

    def to_dict(self) -> dict[str, str]:
        """Serialize for JSON responses."""
        return asdict(self)


SPORTS: tuple[Sport, ...] = (
    Sport(
        id="billiards",
        name="Billiards",
        tagline="Precision shots in the OSU.",
        locationHint="OSU, at the pool tables",
    ),
    Sport(
        id="soccer",
        name="Soccer",
        tagline="Small-sided matches under the lights.",
        locationHint="Fields or turf",
    ),
    Sport(
        id="basketball",
        name="Basketball",
        tagline="Pickup runs in Lewis Gymnasium.",
        locationHint="Lewis Gymnasium",
    ),
    Sport(
        id="squash",
        name="Squash",
        tagline="Fast rallies on the courts.",
        locationHint="OSU squash courts",
    ),
)

_SPORTS_BY_ID = {sport.id: sport for sport in SPORTS}


def find_sport(sport_id: str) -> Sport | None:
    """Look up a sport by id."""
    return _SPORTS_BY_ID.get(sport_id)


def get_sport(sport_id: str) -> Sport:
    """Look up a sport by id, raising NotFoundError if it is unknown."""
    sport = find_sport(sport_id)
    if sport is None:
        raise NotFoundError(f"Unknown sport: {sport_id}")
    return sport
