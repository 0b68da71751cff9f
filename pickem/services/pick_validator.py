"""
Weekly pick admission.

Checks run in a fixed order so callers always see the same rejection for
the same state: membership, weekly quota, season uniqueness, game
resolution, then kickoff lock. The write happens in the same transaction
as the checks, and the unique constraints on ``picks`` turn any concurrent
writer that slipped in between into an IntegrityError.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError

from pickem import db
from pickem.errors import (
    BadRequest,
    Forbidden,
    GameNotFound,
    Locked,
    NotMember,
    PickemError,
    QuotaExceeded,
    TeamAlreadyUsed,
)
from pickem.models import AdminAction, Game, LeagueMember, Pick, Wrinkle, WrinklePick
from pickem.utils.cache_utils import invalidate_league_cache
from pickem.utils.logging_config import ContextualLogger
from pickem.utils.transactions import transaction, violated_constraint

# Extra attempts when a concurrent submission takes the slot we picked
SLOT_RETRIES = 1


class PickCandidate:
    """A proposed weekly pick"""

    def __init__(self, league_id, profile_id, season, week, team_id, game_id=None):
        self.league_id = league_id
        self.profile_id = profile_id
        self.season = season
        self.week = week
        self.team_id = team_id
        self.game_id = game_id

    def log_context(self):
        return {
            "league": self.league_id,
            "profile": self.profile_id,
            "season": self.season,
            "week": self.week,
            "team": self.team_id,
        }


class Resolution:
    """Outcome of a successful validation"""

    def __init__(self, game, slot, replaced=None):
        self.game = game
        self.slot = slot
        self.replaced = replaced
        self.replaced_id = replaced.id if replaced is not None else None

    @property
    def game_id(self):
        return self.game.id


def picks_per_week():
    return current_app.config.get("PICKS_PER_WEEK", 2)


def require_positive(**values):
    errors = {}
    for name, value in values.items():
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            errors[name] = ["must be a positive integer"]
    if errors:
        raise BadRequest("season and week must be positive integers", details=errors)


def _resolve_game(candidate):
    """Find the game for the candidate without raising.

    Returns ``(game, error)`` so rejections can be reported in check order.
    """
    if candidate.game_id is None:
        game = Game.find_for_team(candidate.season, candidate.week, candidate.team_id)
        return game, None if game else GameNotFound()

    game = db.session.get(Game, candidate.game_id)
    if game is None:
        return None, GameNotFound()
    if (
        game.season != candidate.season
        or game.week != candidate.week
        or not game.involves(candidate.team_id)
    ):
        return None, BadRequest("game does not match team/week")
    return game, None


def _team_used_in_wrinkles(candidate):
    return (
        db.session.query(WrinklePick.id)
        .join(Wrinkle, Wrinkle.id == WrinklePick.wrinkle_id)
        .filter(
            Wrinkle.league_id == candidate.league_id,
            Wrinkle.season == candidate.season,
            WrinklePick.profile_id == candidate.profile_id,
            WrinklePick.team_id == candidate.team_id,
        )
        .first()
        is not None
    )


def _free_slot(week_picks, replaced):
    if replaced is not None and replaced.slot is not None:
        return replaced.slot
    taken = {p.slot for p in week_picks if p is not replaced}
    for slot in range(1, picks_per_week() + 1):
        if slot not in taken:
            return slot
    # Only reachable for forced picks beyond the quota
    return None


def validate_and_resolve(candidate, force=False, now=None):
    """
    Admit or reject a proposed pick and resolve its game.

    Args:
        candidate: PickCandidate
        force: administrator override, bypasses quota and lock only
        now: clock override for lock checks

    Returns:
        Resolution with the game, the quota slot to use and the pick being
        replaced (a resubmission on the same game), if any

    Raises:
        NotMember, QuotaExceeded, TeamAlreadyUsed, GameNotFound, BadRequest,
        Locked
    """
    require_positive(season=candidate.season, week=candidate.week)

    game, game_error = _resolve_game(candidate)

    if LeagueMember.find(candidate.league_id, candidate.profile_id) is None:
        raise NotMember()

    week_picks = Pick.for_week(
        candidate.league_id, candidate.profile_id, candidate.season, candidate.week
    )
    replaced = None
    if game is not None:
        replaced = next((p for p in week_picks if p.game_id == game.id), None)

    counted = [p for p in week_picks if p is not replaced]
    if len(counted) >= picks_per_week() and not force:
        raise QuotaExceeded(f"quota reached ({picks_per_week()} picks/week)")

    used = Pick.find_team_pick(
        candidate.league_id,
        candidate.profile_id,
        candidate.season,
        candidate.team_id,
        exclude_id=replaced.id if replaced is not None else None,
    )
    if used is not None:
        raise TeamAlreadyUsed()

    if current_app.config.get(
        "WRINKLE_PICKS_ENFORCE_TEAM_REUSE"
    ) and _team_used_in_wrinkles(candidate):
        raise TeamAlreadyUsed()

    if game_error is not None:
        raise game_error

    if game.is_locked(now) and not force:
        raise Locked()

    return Resolution(game, _free_slot(week_picks, replaced), replaced)


def validate_and_resolve_deletion(pick_id, profile_id, force=False, now=None):
    """
    Return the pick to delete, or None when there is nothing to do.

    A pick that does not exist or belongs to someone else is treated as
    already gone.
    """
    pick = Pick.query.filter_by(id=pick_id, profile_id=profile_id).first()
    if pick is None:
        return None

    game = pick.game
    if game is not None and game.is_locked(now) and not force:
        raise Locked()
    return pick


def _map_integrity_error(error):
    constraint = violated_constraint(error, Pick.__table__)
    if constraint == "uq_pick_week_slot":
        return QuotaExceeded()
    if constraint == "uq_pick_team_season":
        return TeamAlreadyUsed()
    return None


def _check_override(candidate_league_id, force, actor):
    if force and (actor is None or not actor.can_manage(candidate_league_id)):
        raise Forbidden("override requires league admin")


def _insert_pick(candidate, force, now):
    with transaction() as session:
        resolution = validate_and_resolve(candidate, force=force, now=now)
        if resolution.replaced is not None:
            session.delete(resolution.replaced)
            session.flush()

        pick = Pick(
            league_id=candidate.league_id,
            profile_id=candidate.profile_id,
            season=candidate.season,
            week=candidate.week,
            team_id=candidate.team_id,
            game_id=resolution.game_id,
            slot=resolution.slot,
        )
        session.add(pick)
        session.flush()
        return pick, resolution


def submit_pick(candidate, force=False, actor=None, now=None):
    """
    Validate and persist a weekly pick.

    Returns:
        {"pick_id": id}
    """
    log = ContextualLogger(__name__, candidate.log_context())
    _check_override(candidate.league_id, force, actor)

    attempts = 0
    while True:
        try:
            pick, resolution = _insert_pick(candidate, force, now)
            break
        except IntegrityError as e:
            rejection = _map_integrity_error(e)
            if rejection is None:
                raise
            if isinstance(rejection, QuotaExceeded) and attempts < SLOT_RETRIES:
                attempts += 1
                log.debug("Slot taken concurrently, retrying")
                continue
            log.info(f"Pick rejected by constraint: {rejection.code}")
            raise rejection from e
        except PickemError as e:
            log.info(f"Pick rejected: {e.code}")
            raise

    acting_for_other = actor is not None and actor.profile_id != candidate.profile_id
    if force or acting_for_other:
        AdminAction.log_action(
            admin_profile_id=actor.profile_id,
            league_id=candidate.league_id,
            action_type="force_pick" if force else "create_pick",
            description=f"Pick {pick.id} for profile {candidate.profile_id} in week {candidate.week}",
            target_profile_id=candidate.profile_id,
            pick_id=pick.id,
            game_id=pick.game_id,
            action_metadata={
                "team_id": candidate.team_id,
                "slot": resolution.slot,
                "replaced_pick_id": resolution.replaced_id,
            },
        )
        db.session.commit()
        log.warning(f"Admin {actor.profile_id} submitted pick {pick.id} (force={force})")
    else:
        log.info(f"Pick {pick.id} saved for game {pick.game_id}")

    invalidate_league_cache(candidate.league_id, candidate.season)
    return {"pick_id": pick.id}


def delete_pick(pick_id, profile_id, force=False, actor=None, now=None):
    """
    Remove a pick before kickoff.

    Returns:
        {"ok": True}, including when the pick was already gone
    """
    log = ContextualLogger(__name__, {"pick": pick_id, "profile": profile_id})

    pick = validate_and_resolve_deletion(pick_id, profile_id, force=force, now=now)
    if pick is None:
        log.debug("Pick already gone")
        return {"ok": True}

    _check_override(pick.league_id, force, actor)

    league_id, season = pick.league_id, pick.season
    with transaction() as session:
        if force or (actor is not None and actor.profile_id != profile_id):
            AdminAction.log_action(
                admin_profile_id=actor.profile_id,
                league_id=league_id,
                action_type="delete_pick",
                description=f"Deleted pick {pick.id} of profile {profile_id} in week {pick.week}",
                target_profile_id=profile_id,
                pick_id=pick.id,
                game_id=pick.game_id,
                action_metadata={"team_id": pick.team_id, "forced": force},
            )
            log.warning(f"Admin {actor.profile_id} deleted pick")
        session.delete(pick)

    invalidate_league_cache(league_id, season)
    log.info("Pick deleted")
    return {"ok": True}
