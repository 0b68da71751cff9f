from wtforms import SelectField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, Regexp

from pickem.forms import JSONIntegerField
from pickem.forms.picks import POSITIVE, JSONForm
from pickem.models import GameStatus

STATUS_CHOICES = [(status, status.title()) for status in GameStatus.ALL]
SCORE = NumberRange(min=0, max=200)
HEX_COLOR = Regexp(r"^#[0-9A-Fa-f]{6}$", message="Must be a #RRGGBB color")


class GameForm(JSONForm):
    season = JSONIntegerField("Season", validators=[InputRequired(), POSITIVE])
    week = JSONIntegerField("Week", validators=[InputRequired(), POSITIVE])
    home_team_id = JSONIntegerField("Home Team", validators=[InputRequired(), POSITIVE])
    away_team_id = JSONIntegerField("Away Team", validators=[InputRequired(), POSITIVE])
    kickoff_utc = StringField("Kickoff (ISO-8601, UTC)", validators=[DataRequired()])
    status = SelectField("Status", choices=STATUS_CHOICES, default=GameStatus.UPCOMING)
    home_score = JSONIntegerField("Home Score", validators=[Optional(), SCORE])
    away_score = JSONIntegerField("Away Score", validators=[Optional(), SCORE])


class ScoreForm(JSONForm):
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[DataRequired()])
    home_score = JSONIntegerField("Home Score", validators=[Optional(), SCORE])
    away_score = JSONIntegerField("Away Score", validators=[Optional(), SCORE])


class TeamForm(JSONForm):
    abbreviation = StringField("Abbreviation", validators=[DataRequired(), Length(max=10)])
    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    primary_color = StringField("Primary Color", validators=[Optional(), HEX_COLOR])
    secondary_color = StringField("Secondary Color", validators=[Optional(), HEX_COLOR])
