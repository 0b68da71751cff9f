"""
Weekly wrinkles: bonus games picked outside the regular quota, and rule
modifiers applied at scoring time.
"""

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from pickem import db
from pickem.errors import (
    BadRequest,
    GameNotFound,
    Locked,
    NotFound,
    NotMember,
    QuotaExceeded,
    TeamAlreadyUsed,
)
from pickem.models import (
    Game,
    League,
    LeagueMember,
    Pick,
    Wrinkle,
    WrinkleGame,
    WrinkleKind,
    WrinklePick,
)
from pickem.services.pick_validator import SLOT_RETRIES, require_positive
from pickem.services.score_calculator import team_record_before
from pickem.utils.cache_utils import invalidate_league_cache
from pickem.utils.scoring import win_pct
from pickem.utils.transactions import transaction, violated_constraint

logger = logging.getLogger(__name__)

WRINKLE_STATUSES = ("active", "paused")


def _get_wrinkle(wrinkle_id):
    wrinkle = db.session.get(Wrinkle, wrinkle_id)
    if wrinkle is None:
        raise NotFound("wrinkle not found")
    return wrinkle


def create_wrinkle(league_id, season, week, name, kind, status="active", extra_picks=0):
    """Create a wrinkle for one league week"""
    require_positive(season=season, week=week)
    kind = (kind or WrinkleKind.BONUS_GAME).lower()
    if kind not in WrinkleKind.ALL:
        raise BadRequest(f"unknown wrinkle kind: {kind}")
    if status not in WRINKLE_STATUSES:
        raise BadRequest(f"unknown wrinkle status: {status}")
    if extra_picks is None or extra_picks < 0:
        raise BadRequest("extra_picks must be zero or more")
    if db.session.get(League, league_id) is None:
        raise NotFound("league not found")

    with transaction() as session:
        wrinkle = Wrinkle(
            league_id=league_id,
            season=season,
            week=week,
            name=name,
            kind=kind,
            status=status,
            extra_picks=extra_picks,
        )
        session.add(wrinkle)

    logger.info(f"Created {kind} wrinkle {wrinkle.id} for league {league_id} week {week}")
    return wrinkle


def hydrate_wrinkle(wrinkle_id, game_ids, spreads=None):
    """
    Attach games (and spreads) to a wrinkle.

    Existing attachments are updated in place. Games that do not exist are
    reported as ``missing``; games from another week, and against-the-spread
    games without a spread, are reported as ``incomplete``.

    Returns:
        dict with ``counts``, ``missing`` and ``incomplete``
    """
    wrinkle = _get_wrinkle(wrinkle_id)
    spreads = {str(k): v for k, v in (spreads or {}).items()}
    if not game_ids:
        raise BadRequest("game_ids must be a non-empty list")

    games = {g.id: g for g in Game.query.filter(Game.id.in_(game_ids)).all()}
    existing = {wg.game_id: wg for wg in wrinkle.games}

    missing = []
    incomplete = []
    upserted = 0

    with transaction() as session:
        for game_id in game_ids:
            game = games.get(game_id)
            if game is None:
                missing.append(game_id)
                continue

            spread = spreads.get(str(game_id))
            in_scope = game.season == wrinkle.season and game.week == wrinkle.week
            needs_spread = wrinkle.kind == WrinkleKind.BONUS_GAME_ATS and spread is None
            if not in_scope or needs_spread:
                incomplete.append(game_id)
                continue

            entry = existing.get(game_id)
            if entry is None:
                entry = WrinkleGame(wrinkle_id=wrinkle.id, game_id=game_id)
                session.add(entry)
                existing[game_id] = entry
            entry.spread = float(spread) if spread is not None else None
            upserted += 1

        if upserted == 0:
            raise BadRequest(
                "no valid game_ids resolved for this wrinkle",
                details={"missing": missing, "incomplete": incomplete},
            )

    invalidate_league_cache(wrinkle.league_id, wrinkle.season)
    logger.info(f"Hydrated wrinkle {wrinkle.id}: {upserted} games")
    return {
        "ok": True,
        "counts": {
            "requested": len(game_ids),
            "upserted": upserted,
            "missing": len(missing),
            "incomplete": len(incomplete),
        },
        "missing": missing,
        "incomplete": incomplete,
    }


def active_wrinkles(league_id, season, week, profile_id=None):
    """Active wrinkles for a league week, with games and the caller's picks"""
    wrinkles = (
        Wrinkle.query.filter_by(
            league_id=league_id, season=season, week=week, status="active"
        )
        .order_by(Wrinkle.id)
        .all()
    )

    result = []
    for wrinkle in wrinkles:
        data = wrinkle.to_dict()
        if profile_id is not None:
            data["picks"] = [
                wp.to_dict()
                for wp in wrinkle.picks.filter_by(profile_id=profile_id).all()
            ]
        result.append(data)
    return result


def _team_used_elsewhere(wrinkle, profile_id, team_id, replaced_ids):
    """Season reuse check when wrinkle picks share the regular-pick pool"""
    regular = Pick.query.filter_by(
        league_id=wrinkle.league_id,
        profile_id=profile_id,
        season=wrinkle.season,
        team_id=team_id,
    ).first()
    if regular is not None:
        return True

    other = (
        WrinklePick.query.join(Wrinkle, Wrinkle.id == WrinklePick.wrinkle_id)
        .filter(
            Wrinkle.league_id == wrinkle.league_id,
            Wrinkle.season == wrinkle.season,
            WrinklePick.profile_id == profile_id,
            WrinklePick.team_id == team_id,
        )
        .all()
    )
    return any(wp.id not in replaced_ids for wp in other)


def _held_picks(wrinkle, profile_id):
    return wrinkle.picks.filter_by(profile_id=profile_id).all()


def _plan_wrinkle_pick(wrinkle, profile_id, team_id, game, now):
    """Decide which held picks go and which slot the new pick fills"""
    held = _held_picks(wrinkle, profile_id)
    replaced = [wp for wp in held if wp.game_id == game.id]
    others = [wp for wp in held if wp.game_id != game.id]
    if len(others) >= wrinkle.pick_allowance:
        if wrinkle.pick_allowance > 1:
            raise QuotaExceeded("wrinkle pick limit reached")
        replaced.extend(others)

    if current_app.config.get("WRINKLE_PICKS_ENFORCE_TEAM_REUSE"):
        replaced_ids = {wp.id for wp in replaced}
        if _team_used_elsewhere(wrinkle, profile_id, team_id, replaced_ids):
            raise TeamAlreadyUsed()

    if game.is_locked(now) or any(wp.game.is_locked(now) for wp in replaced):
        raise Locked()

    if wrinkle.kind == WrinkleKind.BONUS_GAME_OOF:
        wins, losses = team_record_before(wrinkle.season, team_id, game.kickoff)
        limit = current_app.config.get("OOF_MAX_WIN_PCT", 0.400)
        if win_pct(wins, losses) >= limit:
            raise BadRequest(
                f"team is not eligible (win pct must be under {limit:.3f})",
                details={"wins": wins, "losses": losses},
            )

    taken = {wp.slot for wp in held if wp not in replaced}
    slot = next(s for s in range(1, wrinkle.pick_allowance + 1) if s not in taken)
    return replaced, slot


def _insert_wrinkle_pick(wrinkle, profile_id, team_id, game, now):
    with transaction() as session:
        replaced, slot = _plan_wrinkle_pick(wrinkle, profile_id, team_id, game, now)
        for wp in replaced:
            session.delete(wp)
        session.flush()
        pick = WrinklePick(
            wrinkle_id=wrinkle.id,
            profile_id=profile_id,
            team_id=team_id,
            game_id=game.id,
            slot=slot,
        )
        session.add(pick)
        session.flush()
        return pick


def submit_wrinkle_pick(wrinkle_id, profile_id, team_id, game_id, now=None):
    """
    Make (or swap) a bonus pick for a wrinkle.

    A member may hold ``max(1, extra_picks)`` picks per wrinkle, one per
    slot. Picking the same game again replaces the earlier pick; with a
    single-pick allowance a pick on another game swaps out the held one.

    Returns:
        {"wrinkle_pick_id": id}
    """
    wrinkle = _get_wrinkle(wrinkle_id)
    if not wrinkle.is_active:
        raise BadRequest("wrinkle is not active")
    if wrinkle.kind not in WrinkleKind.BONUS_KINDS:
        raise BadRequest("this wrinkle does not take picks")

    if LeagueMember.find(wrinkle.league_id, profile_id) is None:
        raise NotMember()

    entry = wrinkle.game_entry(game_id)
    if entry is None:
        raise GameNotFound("game is not part of this wrinkle")
    game = entry.game
    if not game.involves(team_id):
        raise BadRequest("team is not playing in this game")

    attempts = 0
    while True:
        try:
            pick = _insert_wrinkle_pick(wrinkle, profile_id, team_id, game, now)
            break
        except IntegrityError as e:
            constraint = violated_constraint(e, WrinklePick.__table__)
            if constraint not in ("uq_wrinkle_pick_slot", "uq_wrinkle_pick_game"):
                raise
            if attempts < SLOT_RETRIES:
                attempts += 1
                logger.debug(f"Wrinkle slot for profile {profile_id} taken, retrying")
                continue
            logger.info(f"Wrinkle pick for profile {profile_id} lost a race: {constraint}")
            raise QuotaExceeded("wrinkle pick limit reached") from e

    invalidate_league_cache(wrinkle.league_id, wrinkle.season)
    logger.info(
        f"Wrinkle pick {pick.id} saved for profile {profile_id} on wrinkle {wrinkle.id}"
    )
    return {"wrinkle_pick_id": pick.id}


def delete_wrinkle_pick(wrinkle_id, profile_id, game_id=None, now=None):
    """Remove a profile's wrinkle picks (optionally one game) before kickoff"""
    wrinkle = _get_wrinkle(wrinkle_id)
    query = wrinkle.picks.filter_by(profile_id=profile_id)
    if game_id is not None:
        query = query.filter_by(game_id=game_id)
    picks = query.all()

    if not picks:
        return {"ok": True, "deleted": 0}
    if any(wp.game.is_locked(now) for wp in picks):
        raise Locked()

    with transaction() as session:
        for wp in picks:
            session.delete(wp)

    invalidate_league_cache(wrinkle.league_id, wrinkle.season)
    logger.info(f"Deleted {len(picks)} wrinkle picks for profile {profile_id}")
    return {"ok": True, "deleted": len(picks)}
