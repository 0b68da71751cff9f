import logging

from flask import jsonify
from flask_login import login_required

from pickem import limiter
from pickem.auth import AuthContext
from pickem.forms import parse_args, parse_body
from pickem.forms.picks import (
    DeletePickForm,
    LeagueSeasonQuery,
    LeagueStatsQuery,
    LeagueWeekQuery,
    PickForm,
    SeasonWeekQuery,
    StandingsQuery,
)
from pickem.forms.wrinkles import DeleteWrinklePickForm, WrinklePickForm
from pickem.models import Pick
from pickem.routes.api import bp
from pickem.services import game_service, score_calculator, wrinkle_service
from pickem.services.pick_validator import PickCandidate, delete_pick, submit_pick

logger = logging.getLogger(__name__)


@bp.route("/picks", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def create_pick():
    """Submit a weekly pick for the current user"""
    form = parse_body(PickForm)
    auth = AuthContext.current()

    candidate = PickCandidate(
        league_id=form.league_id.data,
        profile_id=auth.profile_id,
        season=form.season.data,
        week=form.week.data,
        team_id=form.team_id.data,
        game_id=form.game_id.data,
    )
    return jsonify(submit_pick(candidate, actor=auth)), 201


@bp.route("/picks", methods=["DELETE"])
@login_required
@limiter.limit("60 per minute")
def remove_pick():
    """Unpick before kickoff; deleting a missing pick still succeeds"""
    form = parse_body(DeletePickForm)
    auth = AuthContext.current()
    return jsonify(delete_pick(form.pick_id.data, auth.profile_id, actor=auth))


@bp.route("/picks", methods=["GET"])
@login_required
def my_picks():
    query = parse_args(LeagueWeekQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    picks = Pick.for_week(
        query.league_id.data, auth.profile_id, query.season.data, query.week.data
    )
    return jsonify({"picks": [pick.to_dict() for pick in picks]})


@bp.route("/games")
@login_required
def games_for_week():
    """The week's games with teams, kickoff and lock state"""
    query = parse_args(SeasonWeekQuery)
    games = game_service.games_for_week(query.season.data, query.week.data)
    return jsonify(
        {
            "season": query.season.data,
            "week": query.week.data,
            "games": [game.to_dict() for game in games],
        }
    )


@bp.route("/current-week")
@login_required
def current_week():
    season, week = game_service.current_week()
    return jsonify({"season": season, "week": week})


@bp.route("/used-teams")
@login_required
def used_teams():
    query = parse_args(LeagueSeasonQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    team_ids = Pick.used_team_ids(
        query.league_id.data, auth.profile_id, query.season.data
    )
    return jsonify({"team_ids": sorted(team_ids)})


@bp.route("/standings")
@login_required
def standings():
    query = parse_args(StandingsQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    return jsonify(
        score_calculator.get_standings(
            query.league_id.data, query.season.data, week=query.week.data
        )
    )


@bp.route("/league-stats")
@login_required
def league_stats():
    query = parse_args(LeagueStatsQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    return jsonify(
        score_calculator.league_stats(
            query.league_id.data,
            query.season.data,
            include_live=bool(query.include_live.data),
        )
    )


@bp.route("/league-picks")
@login_required
def league_picks():
    """Everyone's picks for a week, limited to games that have locked"""
    query = parse_args(LeagueWeekQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    return jsonify(
        score_calculator.league_picks_week(
            query.league_id.data, query.season.data, query.week.data
        )
    )


@bp.route("/my-stats")
@login_required
def my_stats():
    query = parse_args(LeagueStatsQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    return jsonify(
        score_calculator.profile_stats(
            query.league_id.data,
            query.season.data,
            auth.profile_id,
            include_live=bool(query.include_live.data),
        )
    )


@bp.route("/wrinkles/active")
@login_required
def active_wrinkles():
    query = parse_args(LeagueWeekQuery)
    auth = AuthContext.current()
    auth.require_member(query.league_id.data)

    wrinkles = wrinkle_service.active_wrinkles(
        query.league_id.data,
        query.season.data,
        query.week.data,
        profile_id=auth.profile_id,
    )
    return jsonify({"wrinkles": wrinkles})


@bp.route("/wrinkles/<int:wrinkle_id>/picks", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def create_wrinkle_pick(wrinkle_id):
    form = parse_body(WrinklePickForm)
    auth = AuthContext.current()

    result = wrinkle_service.submit_wrinkle_pick(
        wrinkle_id, auth.profile_id, form.team_id.data, form.game_id.data
    )
    return jsonify(result), 201


@bp.route("/wrinkles/<int:wrinkle_id>/picks", methods=["DELETE"])
@login_required
def remove_wrinkle_pick(wrinkle_id):
    form = parse_body(DeleteWrinklePickForm)
    auth = AuthContext.current()

    return jsonify(
        wrinkle_service.delete_wrinkle_pick(
            wrinkle_id, auth.profile_id, game_id=form.game_id.data
        )
    )
