from firebase_admin import auth, firestore
from flask import current_app, g, jsonify, request, session

from pickupboard.errors import ValidationError
from pickupboard.user.services import UserService

from . import bp
from .decorators import login_required


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called by the client after signing in with the identity provider.
    It verifies the ID token and stores the chosen display name in the
    server-side session; that name is the caller's identity from then on.
    """
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    if not id_token:
        raise ValidationError("An ID token is required.")

    try:
        decoded_token = auth.verify_id_token(id_token)
    except (auth.InvalidIdTokenError, auth.CertificateFetchError, ValueError) as e:
        current_app.logger.warning(f"Rejected ID token during session login: {e}")
        return (
            jsonify({"status": "error", "message": "Invalid token. Please sign in again."}),
            401,
        )

    display_name = (payload.get("displayName") or decoded_token.get("name") or "").strip()
    if not display_name:
        raise ValidationError("Please enter your name.")

    db = firestore.client()
    profile = UserService.ensure_profile(db, display_name, decoded_token["uid"])

    session.clear()
    session["user_name"] = profile.get("displayName", display_name)
    session["uid"] = decoded_token["uid"]
    current_app.logger.info(f"{session['user_name']} signed in")
    return jsonify(
        {
            "status": "success",
            "user": {
                "displayName": session["user_name"],
                "calendarConnected": UserService.has_calendar_access(profile),
            },
        }
    )


@bp.route("/me")
@login_required
def me():
    """Return the signed-in user."""
    profile = UserService.get_profile(firestore.client(), g.user_name) or {}
    return jsonify(
        {
            "displayName": g.user_name,
            "calendarConnected": UserService.has_calendar_access(profile),
        }
    )


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session."""
    session.clear()
    return jsonify({"status": "success"})
