"""Forms for the events blueprint."""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import IntegerField, StringField, ValidationError
from wtforms.validators import DataRequired, NumberRange, Optional

from pickupboard.core.constants import DEFAULT_MAX_PLAYERS, DEFAULT_MIN_PLAYERS


class EventForm(FlaskForm):
    """Form for proposing a new session."""

    time_raw = StringField("When", validators=[DataRequired()])
    location = StringField("Where", validators=[Optional()])
    max_players = IntegerField(
        "Max players",
        default=DEFAULT_MAX_PLAYERS,
        validators=[Optional(), NumberRange(min=1)],
    )
    min_players = IntegerField(
        "Players needed to confirm",
        default=DEFAULT_MIN_PLAYERS,
        validators=[Optional(), NumberRange(min=1)],
    )

    def validate_min_players(self, field):
        """Validate that the minimum fits under the maximum."""
        if field.data is None or self.max_players.data is None:
            return
        if field.data > self.max_players.data:
            raise ValidationError("Min players cannot be more than max players.")
