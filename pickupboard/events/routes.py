"""Routes for the events blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from pickupboard.auth.decorators import login_required
from pickupboard.core.constants import DEFAULT_MAX_PLAYERS, DEFAULT_MIN_PLAYERS
from pickupboard.errors import ValidationError
from pickupboard.sports import get_sport
from pickupboard.utils import first_form_error, parse_version

from . import bp
from .forms import EventForm
from .models import EventDraft
from .services import EventService


def _requested_version():
    payload = request.get_json(silent=True) or {}
    try:
        return parse_version(payload.get("version"))
    except (TypeError, ValueError):
        raise ValidationError("Version must be a whole number.")


@bp.route("/<string:sport_id>")
def list_events(sport_id):
    """List the upcoming sessions for a sport."""
    db = firestore.client()
    events = EventService.list_events(db, sport_id, current_app.config["TIME_ZONE"])
    return jsonify([event.to_dict() for event in events])


@bp.route("/<string:sport_id>", methods=["POST"])
@login_required
def create_event(sport_id):
    """Propose a new session hosted by the signed-in user."""
    sport = get_sport(sport_id)
    form = EventForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    draft = EventDraft(
        hostName=g.user_name,
        timeRaw=form.time_raw.data.strip(),
        location=(form.location.data or "").strip() or sport.locationHint,
        maxPlayers=form.max_players.data or DEFAULT_MAX_PLAYERS,
        minPlayers=form.min_players.data or DEFAULT_MIN_PLAYERS,
    )
    db = firestore.client()
    event = EventService.create(db, sport_id, draft, current_app.config["TIME_ZONE"])
    current_app.logger.info(f"{g.user_name} created {event.id}")
    return jsonify({"status": "success", "event": event.to_dict()}), 201


@bp.route("/<string:sport_id>/<string:event_id>/join", methods=["POST"])
@login_required
def join_event(sport_id, event_id):
    """Add the signed-in user to a session."""
    get_sport(sport_id)
    db = firestore.client()
    event, changed = EventService.join(
        db, sport_id, event_id, g.user_name, _requested_version()
    )
    if changed:
        current_app.logger.info(f"{g.user_name} joined {event_id}")
    return jsonify({"status": "success", "changed": changed, "event": event.to_dict()})


@bp.route("/<string:sport_id>/<string:event_id>/leave", methods=["POST"])
@login_required
def leave_event(sport_id, event_id):
    """Remove the signed-in user from a session."""
    get_sport(sport_id)
    db = firestore.client()
    event, changed = EventService.leave(
        db, sport_id, event_id, g.user_name, _requested_version()
    )
    if changed:
        current_app.logger.info(f"{g.user_name} left {event_id}")
    return jsonify({"status": "success", "changed": changed, "event": event.to_dict()})


@bp.route("/<string:sport_id>/<string:event_id>/delete", methods=["POST"])
@login_required
def delete_event(sport_id, event_id):
    """Delete a session. Only its host may do this."""
    get_sport(sport_id)
    db = firestore.client()
    deleted = EventService.delete(
        db, sport_id, event_id, g.user_name, _requested_version()
    )
    current_app.logger.info(f"{g.user_name} deleted {event_id}")

    if (
        deleted.is_confirmed
        and any(deleted.calendarEventIds.values())
        and current_app.config.get("CALENDAR_SYNC_ENABLED")
    ):
        from pickupboard.calendar.tasks import (  # noqa: PLC0415
            delete_calendar_entries_background,
        )

        delete_calendar_entries_background(current_app._get_current_object(), deleted)

    return jsonify({"status": "success", "message": "Event deleted."})
