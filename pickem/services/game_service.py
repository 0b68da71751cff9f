"""
Schedule maintenance and score refreshes
"""

import logging

from pickem import db
from pickem.errors import BadRequest, NotFound
from pickem.models import Game, GameStatus, Team
from pickem.services.pick_validator import require_positive
from pickem.services.score_calculator import rescore_game
from pickem.utils.timezone_utils import ensure_utc, get_utc_time
from pickem.utils.transactions import transaction

logger = logging.getLogger(__name__)


def _check_status(status):
    status = (status or GameStatus.UPCOMING).upper()
    if status not in GameStatus.ALL:
        raise BadRequest(f"status must be one of: {', '.join(GameStatus.ALL)}")
    return status


def upsert_game(
    season,
    week,
    home_team_id,
    away_team_id,
    kickoff_utc,
    status=GameStatus.UPCOMING,
    home_score=None,
    away_score=None,
):
    """
    Create or update the game between two teams in a week.

    Returns:
        (game, created)
    """
    require_positive(season=season, week=week)
    status = _check_status(status)
    if home_team_id == away_team_id:
        raise BadRequest("home and away teams must differ")
    for team_id in (home_team_id, away_team_id):
        if db.session.get(Team, team_id) is None:
            raise NotFound(f"team {team_id} not found")

    kickoff = ensure_utc(kickoff_utc).replace(tzinfo=None)

    with transaction() as session:
        game = Game.query.filter_by(
            season=season,
            week=week,
            home_team_id=home_team_id,
            away_team_id=away_team_id,
        ).first()
        created = game is None
        if created:
            game = Game(
                season=season,
                week=week,
                home_team_id=home_team_id,
                away_team_id=away_team_id,
            )
            session.add(game)
        game.kickoff_utc = kickoff
        game.update_score(home_score, away_score, status)

    logger.info(f"{'Created' if created else 'Updated'} game {game.id} (week {week})")
    return game, created


def refresh_score(game_id, home_score, away_score, status):
    """
    Apply a score update and rescore affected leagues when points change.

    Returns:
        (game, rescored) where ``rescored`` maps league ids to rows written
    """
    status = _check_status(status)
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFound("game not found")

    with transaction():
        affects_points = game.update_score(home_score, away_score, status)

    rescored = {}
    if affects_points:
        logger.info(f"Game {game.id} result changed, rescoring week {game.week}")
        rescored = rescore_game(game)
    return game, rescored


def games_for_week(season, week):
    """A week's games in kickoff order"""
    require_positive(season=season, week=week)
    return (
        Game.query.filter_by(season=season, week=week)
        .order_by(Game.kickoff_utc, Game.id)
        .all()
    )


def current_week(now=None):
    """
    The (season, week) pickers should be looking at.

    That is the week of the next game to kick off, else the week of the
    most recent game, else week 1 of the current year.
    """
    now = ensure_utc(now) if now else get_utc_time()
    cutoff = now.replace(tzinfo=None)

    game = (
        Game.query.filter(Game.kickoff_utc >= cutoff)
        .order_by(Game.kickoff_utc)
        .first()
    )
    if game is None:
        game = Game.query.order_by(Game.kickoff_utc.desc()).first()
    if game is None:
        return now.year, 1
    return game.season, game.week


def upsert_team(abbreviation, name, primary_color=None, secondary_color=None):
    """
    Create a team or update its name and colors, keyed by abbreviation.

    Colors left as None keep their stored value.

    Returns:
        (team, created)
    """
    abbreviation = (abbreviation or "").strip().upper()
    if not abbreviation:
        raise BadRequest("abbreviation is required")

    with transaction() as session:
        team = Team.query.filter_by(abbreviation=abbreviation).first()
        created = team is None
        if created:
            team = Team(abbreviation=abbreviation)
            session.add(team)
        team.name = name
        if primary_color is not None:
            team.primary_color = primary_color
        if secondary_color is not None:
            team.secondary_color = secondary_color

    logger.info(f"{'Added' if created else 'Updated'} team {team.id}: {abbreviation}")
    return team, created
