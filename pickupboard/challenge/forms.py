"""Forms for the challenge blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Optional


class ChallengeForm(FlaskForm):
    """Form for challenging another player."""

    to_name = StringField("Opponent", validators=[DataRequired()])
    sport = StringField("Sport", validators=[DataRequired()])
    time_raw = StringField("When", validators=[Optional()])


class ChangeTimeForm(FlaskForm):
    """Form for proposing a new time."""

    time_raw = StringField("When", validators=[DataRequired()])
