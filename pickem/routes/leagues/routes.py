import logging

from flask import jsonify
from flask_login import login_required

from pickem import limiter
from pickem.auth import AuthContext
from pickem.forms import parse_body
from pickem.forms.leagues import AddMemberForm, CreateLeagueForm, JoinLeagueForm, RoleForm
from pickem.models import League, LeagueMember
from pickem.routes.leagues import bp
from pickem.services import league_service

logger = logging.getLogger(__name__)


@bp.route("", methods=["GET"])
@login_required
def my_leagues():
    """Leagues the current user belongs to"""
    auth = AuthContext.current()
    memberships = (
        LeagueMember.query.filter_by(profile_id=auth.profile_id)
        .join(League, League.id == LeagueMember.league_id)
        .order_by(League.season.desc(), League.name)
        .all()
    )
    return jsonify(
        {
            "leagues": [
                dict(
                    m.league.to_dict(include_code=m.is_manager),
                    role=m.role,
                )
                for m in memberships
            ]
        }
    )


@bp.route("", methods=["POST"])
@login_required
@limiter.limit("10 per hour")
def create_league():
    form = parse_body(CreateLeagueForm)
    auth = AuthContext.current()

    league = league_service.create_league(form.name.data, form.season.data, auth.profile)
    return jsonify({"league": league.to_dict(include_code=True)}), 201


@bp.route("/join", methods=["POST"])
@login_required
@limiter.limit("20 per hour")
def join_league():
    form = parse_body(JoinLeagueForm)
    auth = AuthContext.current()

    league, member, created = league_service.join_league(
        form.invite_code.data, auth.profile
    )
    return jsonify(
        {
            "ok": True,
            "already": not created,
            "league": league.to_dict(),
            "role": member.role,
        }
    )


@bp.route("/<int:league_id>/me")
@login_required
def my_role(league_id):
    auth = AuthContext.current()
    league_service.get_league(league_id)
    return jsonify(
        {
            "league_id": league_id,
            "role": auth.role_in(league_id),
            "is_site_admin": auth.site_admin,
        }
    )


@bp.route("/<int:league_id>/members", methods=["GET"])
@login_required
def members(league_id):
    auth = AuthContext.current()
    auth.require_member(league_id)

    return jsonify(
        {"members": [m.to_dict() for m in league_service.list_members(league_id)]}
    )


@bp.route("/<int:league_id>/members", methods=["POST"])
@login_required
def add_member(league_id):
    auth = AuthContext.current()
    auth.require_manager(league_id)
    form = parse_body(AddMemberForm)

    member = league_service.add_member(
        league_id, form.email.data, role=form.role.data, actor=auth
    )
    return jsonify({"member": member.to_dict()}), 201


@bp.route("/<int:league_id>/members/<int:profile_id>", methods=["PATCH"])
@login_required
def update_member(league_id, profile_id):
    auth = AuthContext.current()
    auth.require_owner(league_id)
    form = parse_body(RoleForm)

    member = league_service.set_role(league_id, profile_id, form.role.data, actor=auth)
    return jsonify({"member": member.to_dict()})


@bp.route("/<int:league_id>/members/<int:profile_id>", methods=["DELETE"])
@login_required
def remove_member(league_id, profile_id):
    auth = AuthContext.current()
    auth.require_manager(league_id)

    return jsonify(league_service.remove_member(league_id, profile_id, actor=auth))
