"""
League membership management
"""

import logging

from pickem import db
from pickem.errors import BadRequest, Forbidden, NotFound
from pickem.models import AdminAction, League, LeagueMember, LeagueRole, Profile
from pickem.services.pick_validator import require_positive
from pickem.utils.transactions import transaction

logger = logging.getLogger(__name__)


def get_league(league_id):
    league = db.session.get(League, league_id)
    if league is None:
        raise NotFound("league not found")
    return league


def create_league(name, season, owner):
    """Create a league with ``owner`` as its first member"""
    require_positive(season=season)

    with transaction() as session:
        league = League(name=name.strip(), season=season, created_by=owner.id)
        session.add(league)
        session.flush()
        session.add(
            LeagueMember(league_id=league.id, profile_id=owner.id, role=LeagueRole.OWNER)
        )

    logger.info(f"League {league.id} created by profile {owner.id}")
    return league


def join_league(invite_code, profile):
    """
    Join by invite code. Joining a league twice is a no-op.

    Returns:
        (league, membership, created)
    """
    code = (invite_code or "").strip().upper()
    league = League.query.filter_by(invite_code=code).first()
    if league is None:
        raise NotFound("invalid invite code")

    member = LeagueMember.find(league.id, profile.id)
    if member is not None:
        return league, member, False

    with transaction() as session:
        member = LeagueMember(
            league_id=league.id, profile_id=profile.id, role=LeagueRole.MEMBER
        )
        session.add(member)

    logger.info(f"Profile {profile.id} joined league {league.id}")
    return league, member, True


def add_member(league_id, email, role=LeagueRole.MEMBER, actor=None):
    """Add an existing profile by email, or update its role if already a member"""
    get_league(league_id)
    if role not in (LeagueRole.ADMIN, LeagueRole.MEMBER):
        role = LeagueRole.MEMBER

    profile = Profile.query.filter(
        db.func.lower(Profile.email) == (email or "").strip().lower()
    ).first()
    if profile is None:
        raise NotFound("no profile with that email")

    with transaction() as session:
        member = LeagueMember.find(league_id, profile.id)
        if member is None:
            member = LeagueMember(league_id=league_id, profile_id=profile.id, role=role)
            session.add(member)
        elif member.role != LeagueRole.OWNER:
            member.role = role

        if actor is not None:
            AdminAction.log_action(
                admin_profile_id=actor.profile_id,
                league_id=league_id,
                action_type="add_member",
                description=f"Added {profile.label} as {role}",
                target_profile_id=profile.id,
            )

    return member


def list_members(league_id):
    get_league(league_id)
    members = (
        LeagueMember.query.filter_by(league_id=league_id)
        .order_by(LeagueMember.joined_at)
        .all()
    )
    order = {LeagueRole.OWNER: 0, LeagueRole.ADMIN: 1, LeagueRole.MEMBER: 2}
    members.sort(key=lambda m: (order.get(m.role, 3), m.profile.label.lower()))
    return members


def _get_member(league_id, profile_id):
    member = LeagueMember.find(league_id, profile_id)
    if member is None:
        raise NotFound("member not found")
    return member


def set_role(league_id, profile_id, role, actor=None):
    """Promote or demote a member; the owner's role is fixed"""
    if role not in (LeagueRole.ADMIN, LeagueRole.MEMBER):
        raise BadRequest(f"role must be one of: {LeagueRole.ADMIN}, {LeagueRole.MEMBER}")

    member = _get_member(league_id, profile_id)
    if member.role == LeagueRole.OWNER:
        raise Forbidden("the league owner's role cannot be changed")

    previous = member.role
    with transaction():
        member.role = role
        if actor is not None:
            AdminAction.log_action(
                admin_profile_id=actor.profile_id,
                league_id=league_id,
                action_type="set_role",
                description=f"Role of profile {profile_id}: {previous} -> {role}",
                target_profile_id=profile_id,
                action_metadata={"from": previous, "to": role},
            )

    logger.warning(f"Profile {profile_id} in league {league_id} is now {role}")
    return member


def remove_member(league_id, profile_id, actor=None):
    """Remove a member; picks already made stay on record"""
    member = _get_member(league_id, profile_id)
    if member.role == LeagueRole.OWNER:
        raise Forbidden("owners cannot be removed")

    with transaction() as session:
        session.delete(member)
        if actor is not None:
            AdminAction.log_action(
                admin_profile_id=actor.profile_id,
                league_id=league_id,
                action_type="remove_member",
                description=f"Removed profile {profile_id}",
                target_profile_id=profile_id,
            )

    logger.warning(f"Profile {profile_id} removed from league {league_id}")
    return {"ok": True}
