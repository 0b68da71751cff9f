"""
Aggregation of pick results into weekly points, season points, standings
and league leaderboards.

Per-pick rules live in ``pickem.utils.scoring``; this module loads picks and
games, applies the league's wrinkles and persists the totals.
"""

import logging
from collections import defaultdict

from flask import current_app

from pickem import db
from pickem.models import (
    Game,
    GameStatus,
    LeagueMember,
    Pick,
    Profile,
    SeasonPoints,
    WeeklyPoints,
    Wrinkle,
    WrinkleGame,
    WrinkleKind,
    WrinklePick,
)
from pickem.utils.cache_utils import cached_league_query, invalidate_league_cache
from pickem.utils.scoring import (
    RESULT_LOSS,
    RESULT_WIN,
    compute_leaderboards,
    double_if_winless,
    is_correct,
    longest_win_streak,
    points_for_pick,
    result_for,
)
from pickem.utils.timezone_utils import ensure_utc, get_utc_time
from pickem.utils.transactions import transaction

logger = logging.getLogger(__name__)


def team_record_before(season, team_id, cutoff):
    """Wins and losses in FINAL games that kicked off before ``cutoff``.

    Ties and games without a score count as neither.
    """
    cutoff = ensure_utc(cutoff).replace(tzinfo=None)
    games = Game.query.filter(
        Game.season == season,
        Game.status == GameStatus.FINAL,
        Game.kickoff_utc < cutoff,
        db.or_(Game.home_team_id == team_id, Game.away_team_id == team_id),
    ).all()

    wins = losses = 0
    for game in games:
        result = result_for(team_id, game)
        if result == RESULT_WIN:
            wins += 1
        elif result == RESULT_LOSS:
            losses += 1
    return wins, losses


class ScoredPick:
    """One regular or wrinkle pick with its computed outcome"""

    def __init__(self, profile_id, week, team_id, game, wrinkle=False, spread=None):
        self.profile_id = profile_id
        self.week = week
        self.team_id = team_id
        self.game = game
        self.wrinkle = wrinkle
        self.spread = spread
        self.points = points_for_pick(team_id, game, spread)
        self.result = result_for(team_id, game, spread)
        self.correct = is_correct(team_id, game, spread)

    @property
    def decided(self):
        return self.game is not None and self.game.is_final

    @property
    def sort_key(self):
        """Week, then kickoff; only meaningful for decided picks"""
        return (self.week, self.game.kickoff)

    def to_log_row(self, display_name, include_live=False):
        status = self.game.status if self.game is not None else GameStatus.UPCOMING
        if self.decided:
            points = self.points
        else:
            points = (self.points or 0) if include_live else None
        return {
            "week": self.week,
            "profile_id": self.profile_id,
            "display_name": display_name,
            "team_id": self.team_id,
            "game_id": self.game.id if self.game is not None else None,
            "status": status,
            "result": self.result,
            "score": (
                {"home": self.game.home_score, "away": self.game.away_score}
                if self.game is not None
                else None
            ),
            "points": points,
            "wrinkle": self.wrinkle,
        }


def _wrinkles_in_scope(league_id, season, week=None):
    query = Wrinkle.query.filter_by(league_id=league_id, season=season)
    if week is not None:
        query = query.filter_by(week=week)
    return query.all()


def collect_scored_picks(league_id, season, week=None):
    """Every regular and wrinkle pick in scope with its points applied"""
    wrinkles = _wrinkles_in_scope(league_id, season, week)

    doubled_weeks = {
        w.week for w in wrinkles if w.kind == WrinkleKind.WINLESS_DOUBLE and w.is_active
    }

    picks_query = Pick.query.filter_by(league_id=league_id, season=season)
    if week is not None:
        picks_query = picks_query.filter_by(week=week)

    scored = []
    for pick in picks_query.all():
        entry = ScoredPick(pick.profile_id, pick.week, pick.team_id, pick.game)
        if pick.week in doubled_weeks and entry.points:
            wins, _ = team_record_before(season, pick.team_id, pick.created_at)
            entry.points = double_if_winless(entry.points, wins)
        scored.append(entry)

    bonus = [w for w in wrinkles if w.kind in WrinkleKind.BONUS_KINDS]
    if bonus:
        spreads = {
            (wg.wrinkle_id, wg.game_id): wg.spread
            for wg in WrinkleGame.query.filter(
                WrinkleGame.wrinkle_id.in_([w.id for w in bonus])
            ).all()
        }
        by_id = {w.id: w for w in bonus}
        wrinkle_picks = WrinklePick.query.filter(
            WrinklePick.wrinkle_id.in_(list(by_id))
        ).all()
        for wp in wrinkle_picks:
            wrinkle = by_id[wp.wrinkle_id]
            spread = None
            if wrinkle.kind == WrinkleKind.BONUS_GAME_ATS:
                spread = spreads.get((wp.wrinkle_id, wp.game_id))
            scored.append(
                ScoredPick(
                    wp.profile_id,
                    wrinkle.week,
                    wp.team_id,
                    wp.game,
                    wrinkle=True,
                    spread=spread,
                )
            )

    return scored


def _display_names(profile_ids):
    if not profile_ids:
        return {}
    profiles = Profile.query.filter(Profile.id.in_(list(profile_ids))).all()
    return {p.id: p.label for p in profiles}


def aggregate_weekly(league_id, season, week):
    """Upsert WeeklyPoints for everyone with picks (or a stale row) this week

    Returns the number of rows written.
    """
    totals = defaultdict(float)
    for entry in collect_scored_picks(league_id, season, week):
        totals[entry.profile_id] += entry.points or 0

    existing = {
        row.profile_id: row
        for row in WeeklyPoints.query.filter_by(
            league_id=league_id, season=season, week=week
        ).all()
    }

    upserted = 0
    for profile_id in set(totals) | set(existing):
        row = existing.get(profile_id)
        if row is None:
            row = WeeklyPoints(
                league_id=league_id, season=season, week=week, profile_id=profile_id
            )
            db.session.add(row)
        row.points = totals.get(profile_id, 0.0)
        upserted += 1

    db.session.flush()
    return upserted


def aggregate_season(league_id, season):
    """Recompute SeasonPoints as the sum of all WeeklyPoints rows"""
    sums = (
        db.session.query(WeeklyPoints.profile_id, db.func.sum(WeeklyPoints.points))
        .filter(
            WeeklyPoints.league_id == league_id, WeeklyPoints.season == season
        )
        .group_by(WeeklyPoints.profile_id)
        .all()
    )
    existing = {
        row.profile_id: row
        for row in SeasonPoints.query.filter_by(league_id=league_id, season=season).all()
    }

    for profile_id, total in sums:
        row = existing.get(profile_id)
        if row is None:
            row = SeasonPoints(league_id=league_id, season=season, profile_id=profile_id)
            db.session.add(row)
        row.points = float(total or 0)

    db.session.flush()
    return len(sums)


def score_week(league_id, season, week):
    """
    Persist weekly and season totals for one league week.

    Idempotent: re-running with unchanged results rewrites identical rows.

    Returns:
        {"points_upserted": n}
    """
    with transaction():
        upserted = aggregate_weekly(league_id, season, week)
        aggregate_season(league_id, season)

    invalidate_league_cache(league_id, season)
    logger.info(
        f"Scored league {league_id} season {season} week {week}: {upserted} rows"
    )
    return {"points_upserted": upserted}


def leagues_for_week(season, week):
    pick_leagues = (
        db.session.query(Pick.league_id)
        .filter(Pick.season == season, Pick.week == week)
        .distinct()
    )
    wrinkle_leagues = (
        db.session.query(Wrinkle.league_id)
        .filter(Wrinkle.season == season, Wrinkle.week == week)
        .distinct()
    )
    ids = {row.league_id for row in pick_leagues} | {
        row.league_id for row in wrinkle_leagues
    }
    return sorted(ids)


def rescore_week(season, week):
    """Score every league with picks in the week, then mark its games scored"""
    results = {}
    for league_id in leagues_for_week(season, week):
        results[league_id] = score_week(league_id, season, week)["points_upserted"]

    with transaction():
        stamped = get_utc_time()
        for game in Game.query.filter_by(
            season=season, week=week, status=GameStatus.FINAL
        ).all():
            game.scored_at = stamped

    return results


def rescore_game(game):
    """Rescore every league affected by a finalized or corrected game"""
    return rescore_week(game.season, game.week)


@cached_league_query("standings", timeout=300)
def get_standings(league_id, season, week=None):
    """
    Standings for every league member.

    Rows are ordered by points, correct picks, longest streak and wrinkle
    points (all descending), then display name.
    """
    member_ids = [
        m.profile_id for m in LeagueMember.query.filter_by(league_id=league_id).all()
    ]
    names = _display_names(member_ids)

    by_profile = defaultdict(list)
    for entry in collect_scored_picks(league_id, season, week):
        by_profile[entry.profile_id].append(entry)

    rows = []
    for profile_id in member_ids:
        entries = by_profile.get(profile_id, [])
        decided = sorted((e for e in entries if e.decided), key=lambda e: e.sort_key)
        rows.append(
            {
                "profile_id": profile_id,
                "display_name": names.get(profile_id, "Member"),
                "points": sum(e.points or 0 for e in decided),
                "correct": sum(1 for e in decided if e.correct),
                "longest_streak": longest_win_streak([e.result for e in decided]),
                "wrinkle_points": sum(e.points or 0 for e in decided if e.wrinkle),
            }
        )

    rows.sort(
        key=lambda r: (
            -r["points"],
            -r["correct"],
            -r["longest_streak"],
            -r["wrinkle_points"],
            r["display_name"],
        )
    )

    leader = rows[0]["points"] if rows else 0
    playoff_spots = current_app.config.get("PLAYOFF_SPOTS", 4)
    cut = rows[playoff_spots - 1]["points"] if len(rows) >= playoff_spots else 0

    for idx, row in enumerate(rows):
        row["rank"] = idx + 1
        row["back_from_first"] = max(0, leader - row["points"])
        row["back_to_playoffs"] = max(0, cut - row["points"])

    return {"league_id": league_id, "season": season, "week": week, "rows": rows}


@cached_league_query("league_stats", timeout=120)
def league_stats(league_id, season, include_live=False):
    """Pick log plus the three leaderboards, computed from FINAL picks only"""
    entries = collect_scored_picks(league_id, season)
    names = _display_names({e.profile_id for e in entries})

    visible = [e for e in entries if include_live or e.decided]
    log = [
        e.to_log_row(names.get(e.profile_id, "Member"), include_live=include_live)
        for e in visible
    ]
    log.sort(key=lambda r: (r["week"], r["display_name"]))

    finals = defaultdict(list)
    for entry in entries:
        if entry.decided:
            finals[entry.profile_id].append(entry)

    leader_rows = []
    for profile_id, decided in finals.items():
        decided.sort(key=lambda e: e.sort_key)
        leader_rows.append(
            {
                "profile_id": profile_id,
                "display_name": names.get(profile_id, "Member"),
                "decided": len(decided),
                "correct": sum(1 for e in decided if e.correct),
                "points_total": sum(e.points or 0 for e in decided),
                "longest_streak": longest_win_streak([e.result for e in decided]),
            }
        )

    return {
        "league_id": league_id,
        "season": season,
        "leaders": compute_leaderboards(leader_rows),
        "log": log,
    }


def league_picks_week(league_id, season, week, now=None):
    """
    Every member's regular picks for a week, once their games are locked.

    Picks on games that have not kicked off stay private. Members are
    listed by display name; points count FINAL games only.
    """
    entries = [
        e
        for e in collect_scored_picks(league_id, season, week)
        if not e.wrinkle
        and e.game is not None
        and (e.game.status != GameStatus.UPCOMING or e.game.is_locked(now))
    ]
    names = _display_names({e.profile_id for e in entries})

    members = {}
    for entry in sorted(entries, key=lambda e: e.game.kickoff):
        bucket = members.setdefault(
            entry.profile_id,
            {
                "profile_id": entry.profile_id,
                "display_name": names.get(entry.profile_id, "Member"),
                "picks": [],
                "points_week": 0,
            },
        )
        bucket["picks"].append(
            {
                "game_id": entry.game.id,
                "team_id": entry.team_id,
                "status": entry.game.status,
                "result": entry.result,
                "points": entry.points if entry.decided else None,
            }
        )
        if entry.decided:
            bucket["points_week"] += entry.points or 0

    rows = sorted(members.values(), key=lambda m: m["display_name"])
    return {"league_id": league_id, "season": season, "week": week, "members": rows}


def profile_stats(league_id, season, profile_id, include_live=False):
    """One member's pick log with a FINAL-only summary"""
    entries = [
        e for e in collect_scored_picks(league_id, season) if e.profile_id == profile_id
    ]
    name = _display_names([profile_id]).get(profile_id, "Member")

    visible = [e for e in entries if include_live or e.decided]
    log = [e.to_log_row(name, include_live=include_live) for e in visible]
    log.sort(key=lambda r: r["week"])

    decided = sorted((e for e in entries if e.decided), key=lambda e: e.sort_key)
    points_total = sum(e.points or 0 for e in decided)
    correct = sum(1 for e in decided if e.correct)

    return {
        "league_id": league_id,
        "season": season,
        "summary": {
            "picks_total": len(entries),
            "decided_picks": len(decided),
            "correct": correct,
            "accuracy": round(correct / len(decided), 3) if decided else 0,
            "longest_streak": longest_win_streak([e.result for e in decided]),
            "points_total": points_total,
            "avg_points_per_pick": round(points_total / len(decided), 2) if decided else 0,
            "wrinkle_points": sum(e.points or 0 for e in decided if e.wrinkle),
        },
        "log": log,
    }
