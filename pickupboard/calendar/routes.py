"""Routes for the calendar blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from pickupboard.auth.decorators import login_required
from pickupboard.errors import AuthorizationError, ValidationError
from pickupboard.utils import names_equal

from . import bp
from .functions import CalendarFunctions

REQUIRED_EVENT_FIELDS = ("summary", "startDateTime", "endDateTime", "timeZone")


def _payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("A JSON body is required.")
    return payload


def _event_data(payload):
    event_data = payload.get("eventData")
    if not isinstance(event_data, dict):
        raise ValidationError("eventData is required.")
    missing = [key for key in REQUIRED_EVENT_FIELDS if not event_data.get(key)]
    if missing:
        raise ValidationError(f"eventData is missing {', '.join(missing)}.")
    return event_data


def _calendar_event_ids(payload):
    ids = payload.get("calendarEventIds")
    if not isinstance(ids, dict):
        raise ValidationError("calendarEventIds is required.")
    return ids


def _require_member(names):
    """The caller may only act on sessions they are part of."""
    if not any(names_equal(name, g.user_name) for name in names):
        raise AuthorizationError("You are not part of this session.")


def _run(call):
    functions = CalendarFunctions.from_config(firestore.client(), current_app.config)
    try:
        return call(functions)
    finally:
        functions.client.close()


@bp.route("/events/create", methods=["POST"])
@login_required
def create_calendar_events():
    """Create calendar entries for every participant."""
    payload = _payload()
    event_data = _event_data(payload)
    participants = payload.get("participants")
    if not isinstance(participants, list) or not participants:
        raise ValidationError("participants must be a non-empty list.")
    _require_member(participants)

    ids = _run(lambda functions: functions.create_calendar_events(event_data, participants))
    current_app.logger.info(
        f"Calendar create for {len(participants)} participant(s): "
        f"{sum(1 for value in ids.values() if value)} succeeded"
    )
    return jsonify({"calendarEventIds": ids})


@bp.route("/events/update", methods=["POST"])
@login_required
def update_calendar_events():
    """Refresh calendar entries after the session details changed."""
    payload = _payload()
    event_data = _event_data(payload)
    ids = _calendar_event_ids(payload)
    _require_member(ids)

    results = _run(lambda functions: functions.update_calendar_events(event_data, ids))
    return jsonify({"results": results})


@bp.route("/events/delete", methods=["POST"])
@login_required
def delete_calendar_events():
    """Delete calendar entries."""
    payload = _payload()
    ids = _calendar_event_ids(payload)
    _require_member(ids)

    results = _run(lambda functions: functions.delete_calendar_events(ids))
    return jsonify({"results": results})


@bp.route("/tokens", methods=["POST"])
@login_required
def store_tokens():
    """Store the signed-in user's Google OAuth credential."""
    payload = _payload()
    expiry = payload.get("expiry")
    if expiry is not None and (isinstance(expiry, bool) or not isinstance(expiry, int)):
        raise ValidationError("expiry must be epoch milliseconds.")

    _run(
        lambda functions: functions.store_user_tokens(
            g.user_name,
            payload.get("accessToken"),
            payload.get("refreshToken"),
            expiry,
        )
    )
    current_app.logger.info(f"Stored calendar credential for {g.user_name}")
    return jsonify({"status": "success"})
