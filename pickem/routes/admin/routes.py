import logging

from flask import jsonify
from flask_login import login_required

from pickem import db
from pickem.auth import AuthContext, cron_authorized
from pickem.errors import BadRequest, NotFound
from pickem.forms import parse_body
from pickem.forms.games import GameForm, ScoreForm, TeamForm
from pickem.forms.picks import AdminPickForm, DeletePickForm, ScoreWeekForm
from pickem.forms.wrinkles import HydrateWrinkleForm, WrinkleForm
from pickem.models import AdminAction, Pick, Team, Wrinkle
from pickem.routes.admin import bp
from pickem.services import game_service, score_calculator, wrinkle_service
from pickem.services.league_service import get_league
from pickem.services.pick_validator import PickCandidate, delete_pick, submit_pick
from pickem.services.scheduler_service import scheduler_service
from pickem.utils.timezone_utils import parse_iso_datetime

logger = logging.getLogger(__name__)


@bp.route("/leagues/<int:league_id>/picks", methods=["POST"])
@login_required
def force_pick(league_id):
    """Create or replace a member's pick, bypassing quota and kickoff lock"""
    auth = AuthContext.current()
    get_league(league_id)
    auth.require_manager(league_id)
    form = parse_body(AdminPickForm)

    candidate = PickCandidate(
        league_id=league_id,
        profile_id=form.profile_id.data,
        season=form.season.data,
        week=form.week.data,
        team_id=form.team_id.data,
        game_id=form.game_id.data,
    )
    return jsonify(submit_pick(candidate, force=True, actor=auth)), 201


@bp.route("/leagues/<int:league_id>/picks", methods=["DELETE"])
@login_required
def admin_delete_pick(league_id):
    auth = AuthContext.current()
    auth.require_manager(league_id)
    form = parse_body(DeletePickForm)

    pick = Pick.query.filter_by(id=form.pick_id.data, league_id=league_id).first()
    if pick is None:
        return jsonify({"ok": True})
    return jsonify(delete_pick(pick.id, pick.profile_id, force=True, actor=auth))


@bp.route("/leagues/<int:league_id>/actions")
@login_required
def admin_actions(league_id):
    """Audit trail of administrator overrides, newest first"""
    auth = AuthContext.current()
    auth.require_manager(league_id)

    actions = (
        AdminAction.query.filter_by(league_id=league_id)
        .order_by(AdminAction.created_at.desc())
        .limit(200)
        .all()
    )
    return jsonify({"actions": [action.to_dict() for action in actions]})


@bp.route("/score-week", methods=["POST"])
def score_week():
    """Recompute weekly and season points; league admins or the cron secret"""
    form = parse_body(ScoreWeekForm)
    league_id = form.league_id.data
    get_league(league_id)

    if not cron_authorized():
        AuthContext.current().require_manager(league_id)

    return jsonify(
        score_calculator.score_week(league_id, form.season.data, form.week.data)
    )


@bp.route("/games", methods=["POST"])
@login_required
def upsert_game():
    AuthContext.current().require_site_admin()
    form = parse_body(GameForm)

    try:
        kickoff = parse_iso_datetime(form.kickoff_utc.data)
    except ValueError:
        raise BadRequest(
            "invalid kickoff", details={"kickoff_utc": ["Not an ISO-8601 datetime."]}
        )

    game, created = game_service.upsert_game(
        season=form.season.data,
        week=form.week.data,
        home_team_id=form.home_team_id.data,
        away_team_id=form.away_team_id.data,
        kickoff_utc=kickoff,
        status=form.status.data,
        home_score=form.home_score.data,
        away_score=form.away_score.data,
    )
    return jsonify({"game": game.to_dict(), "created": created}), 201 if created else 200


@bp.route("/teams", methods=["GET"])
@login_required
def list_teams():
    AuthContext.current().require_site_admin()
    teams = Team.query.order_by(Team.abbreviation).all()
    return jsonify({"teams": [team.to_dict() for team in teams]})


@bp.route("/teams", methods=["POST"])
@login_required
def upsert_team():
    """Add a team or update its name and colors by abbreviation"""
    AuthContext.current().require_site_admin()
    form = parse_body(TeamForm)

    team, created = game_service.upsert_team(
        form.abbreviation.data,
        form.name.data.strip(),
        primary_color=form.primary_color.data or None,
        secondary_color=form.secondary_color.data or None,
    )
    return jsonify({"team": team.to_dict(), "created": created}), 201 if created else 200


@bp.route("/games/<int:game_id>/score", methods=["PATCH"])
def update_score(game_id):
    """Score refresh from an admin or the cron feed"""
    if not cron_authorized():
        AuthContext.current().require_site_admin()
    form = parse_body(ScoreForm)

    game, rescored = game_service.refresh_score(
        game_id, form.home_score.data, form.away_score.data, form.status.data
    )
    return jsonify(
        {
            "game": game.to_dict(),
            "rescored": {str(league_id): rows for league_id, rows in rescored.items()},
        }
    )


@bp.route("/wrinkles", methods=["POST"])
@login_required
def create_wrinkle():
    form = parse_body(WrinkleForm)
    auth = AuthContext.current()
    get_league(form.league_id.data)
    auth.require_manager(form.league_id.data)

    wrinkle = wrinkle_service.create_wrinkle(
        league_id=form.league_id.data,
        season=form.season.data,
        week=form.week.data,
        name=form.name.data,
        kind=form.kind.data,
        status=form.status.data,
        extra_picks=form.extra_picks.data or 0,
    )
    return jsonify({"ok": True, "wrinkle": wrinkle.to_dict()}), 201


@bp.route("/wrinkles/<int:wrinkle_id>/hydrate", methods=["POST"])
@login_required
def hydrate_wrinkle(wrinkle_id):
    wrinkle = db.session.get(Wrinkle, wrinkle_id)
    if wrinkle is None:
        raise NotFound("wrinkle not found")
    AuthContext.current().require_manager(wrinkle.league_id)
    form = parse_body(HydrateWrinkleForm)

    return jsonify(
        wrinkle_service.hydrate_wrinkle(
            wrinkle_id, form.game_ids.data, spreads=form.spreads.data
        )
    )


@bp.route("/scheduler")
@login_required
def scheduler_status():
    AuthContext.current().require_site_admin()
    return jsonify(scheduler_service.get_status())
