from wtforms import SelectField, StringField
from wtforms.validators import DataRequired, Email, InputRequired, Length, Regexp

from pickem.forms import JSONIntegerField
from pickem.forms.picks import POSITIVE, JSONForm
from pickem.models import LeagueRole


class CreateLeagueForm(JSONForm):
    name = StringField(
        "League Name",
        validators=[
            DataRequired(),
            Length(
                min=3,
                max=100,
                message="League name must be between 3 and 100 characters",
            ),
            Regexp(
                r"^[a-zA-Z0-9 _.'-]+$", message="League name contains invalid characters"
            ),
        ],
    )
    season = JSONIntegerField("Season", validators=[InputRequired(), POSITIVE])


class JoinLeagueForm(JSONForm):
    invite_code = StringField(
        "Invite Code", validators=[DataRequired(), Length(min=4, max=16)]
    )


class AddMemberForm(JSONForm):
    email = StringField(
        "Email Address",
        validators=[
            DataRequired(),
            Email(message="Please enter a valid email address"),
        ],
    )
    role = SelectField(
        "Role",
        choices=[(LeagueRole.MEMBER, "Member"), (LeagueRole.ADMIN, "Admin")],
        default=LeagueRole.MEMBER,
    )


class RoleForm(JSONForm):
    role = SelectField(
        "Role",
        choices=[(LeagueRole.MEMBER, "Member"), (LeagueRole.ADMIN, "Admin")],
        validators=[DataRequired()],
    )
