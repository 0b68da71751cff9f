from flask_wtf import FlaskForm
from wtforms import BooleanField, Form, IntegerField
from wtforms.validators import InputRequired, NumberRange, Optional

from pickem.forms import JSONIntegerField

POSITIVE = NumberRange(min=1, message="Must be a positive integer")


class JSONForm(FlaskForm):
    """Base for JSON API bodies; the session authenticates, not a form token"""

    class Meta:
        csrf = False


class PickForm(JSONForm):
    league_id = JSONIntegerField("League", validators=[InputRequired(), POSITIVE])
    season = JSONIntegerField("Season", validators=[InputRequired(), POSITIVE])
    week = JSONIntegerField("Week", validators=[InputRequired(), POSITIVE])
    team_id = JSONIntegerField("Team", validators=[InputRequired(), POSITIVE])
    game_id = JSONIntegerField("Game", validators=[Optional(), POSITIVE])


class AdminPickForm(JSONForm):
    """Pick on behalf of a member; the league comes from the URL"""

    profile_id = JSONIntegerField("Member", validators=[InputRequired(), POSITIVE])
    season = JSONIntegerField("Season", validators=[InputRequired(), POSITIVE])
    week = JSONIntegerField("Week", validators=[InputRequired(), POSITIVE])
    team_id = JSONIntegerField("Team", validators=[InputRequired(), POSITIVE])
    game_id = JSONIntegerField("Game", validators=[Optional(), POSITIVE])


class DeletePickForm(JSONForm):
    pick_id = JSONIntegerField("Pick", validators=[InputRequired(), POSITIVE])


class ScoreWeekForm(JSONForm):
    league_id = JSONIntegerField("League", validators=[InputRequired(), POSITIVE])
    season = JSONIntegerField("Season", validators=[InputRequired(), POSITIVE])
    week = JSONIntegerField("Week", validators=[InputRequired(), POSITIVE])


class LeagueSeasonQuery(Form):
    league_id = IntegerField("League", validators=[InputRequired(), POSITIVE])
    season = IntegerField("Season", validators=[InputRequired(), POSITIVE])


class LeagueWeekQuery(LeagueSeasonQuery):
    week = IntegerField("Week", validators=[InputRequired(), POSITIVE])


class StandingsQuery(LeagueSeasonQuery):
    week = IntegerField("Week", validators=[Optional(), POSITIVE])


class LeagueStatsQuery(LeagueSeasonQuery):
    include_live = BooleanField("Include live games", default=False)


class SeasonWeekQuery(Form):
    season = IntegerField("Season", validators=[InputRequired(), POSITIVE])
    week = IntegerField("Week", validators=[InputRequired(), POSITIVE])
