"""Routes for the challenge blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify

from pickupboard.auth.decorators import login_required
from pickupboard.errors import ValidationError
from pickupboard.utils import first_form_error

from . import bp
from .forms import ChallengeForm, ChangeTimeForm
from .services import ChallengeService


@bp.route("/")
@login_required
def list_challenges():
    """List the signed-in user's sent and received challenges."""
    db = firestore.client()
    return jsonify(ChallengeService.list_for_user(db, g.user_name))


@bp.route("/", methods=["POST"])
@login_required
def create_challenge():
    """Challenge another player."""
    form = ChallengeForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    db = firestore.client()
    challenge = ChallengeService.create(
        db,
        g.user_name,
        form.to_name.data,
        form.sport.data,
        form.time_raw.data,
        current_app.config["TIME_ZONE"],
        current_app.config["CHALLENGE_TIME_REQUIRED"],
    )
    current_app.logger.info(
        f"{g.user_name} challenged {challenge['toName']} ({challenge['id']})"
    )
    return jsonify({"status": "success", "challenge": challenge}), 201


@bp.route("/<string:challenge_id>/accept", methods=["POST"])
@login_required
def accept_challenge(challenge_id):
    """Accept a challenge."""
    challenge = ChallengeService.accept(firestore.client(), challenge_id, g.user_name)
    current_app.logger.info(f"{g.user_name} accepted {challenge_id}")
    return jsonify({"status": "success", "challenge": challenge})


@bp.route("/<string:challenge_id>/dismiss", methods=["POST"])
@login_required
def dismiss_challenge(challenge_id):
    """Dismiss a challenge."""
    challenge = ChallengeService.dismiss(firestore.client(), challenge_id, g.user_name)
    current_app.logger.info(f"{g.user_name} dismissed {challenge_id}")
    return jsonify({"status": "success", "challenge": challenge})


@bp.route("/<string:challenge_id>/time", methods=["POST"])
@login_required
def change_challenge_time(challenge_id):
    """Propose a new time for a challenge."""
    form = ChangeTimeForm()
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))

    challenge = ChallengeService.change_time(
        firestore.client(),
        challenge_id,
        g.user_name,
        form.time_raw.data,
        current_app.config["TIME_ZONE"],
    )
    return jsonify({"status": "success", "challenge": challenge})
