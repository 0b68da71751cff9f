from wtforms import SelectField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from pickem.forms import IntegerListField, JSONIntegerField, MappingField
from pickem.forms.picks import POSITIVE, JSONForm
from pickem.models import WrinkleKind


class WrinkleForm(JSONForm):
    league_id = JSONIntegerField("League", validators=[InputRequired(), POSITIVE])
    season = JSONIntegerField("Season", validators=[InputRequired(), POSITIVE])
    week = JSONIntegerField("Week", validators=[InputRequired(), POSITIVE])
    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    kind = SelectField(
        "Kind", choices=[(kind, kind) for kind in WrinkleKind.ALL], validators=[DataRequired()]
    )
    status = SelectField(
        "Status", choices=[("active", "Active"), ("paused", "Paused")], default="active"
    )
    extra_picks = JSONIntegerField(
        "Extra Picks", validators=[Optional(), NumberRange(min=0, max=10)], default=0
    )


class HydrateWrinkleForm(JSONForm):
    game_ids = IntegerListField("Games", validators=[DataRequired()])
    spreads = MappingField("Spreads", default=dict)


class WrinklePickForm(JSONForm):
    team_id = JSONIntegerField("Team", validators=[InputRequired(), POSITIVE])
    game_id = JSONIntegerField("Game", validators=[InputRequired(), POSITIVE])


class DeleteWrinklePickForm(JSONForm):
    game_id = JSONIntegerField("Game", validators=[Optional(), POSITIVE])
