"""Tests for score refreshes, rescoring and the background refresh job."""

from datetime import datetime, timezone

import pytest

from pickem import db
from pickem.errors import BadRequest, NotFound
from pickem.models import Game, GameStatus, WeeklyPoints
from pickem.services.game_service import (
    current_week,
    refresh_score,
    upsert_game,
    upsert_team,
)
from pickem.services.scheduler_service import SchedulerService, rescore_finalized_games
from pickem.services.score_calculator import rescore_week

from conftest import SEASON, hours_from_now


def _make_game(home_score=None, away_score=None, status=GameStatus.UPCOMING):
    return Game(
        season=SEASON,
        week=1,
        home_team_id=1,
        away_team_id=2,
        status=status,
        home_score=home_score,
        away_score=away_score,
    )


def test_update_score_reports_finalization():
    game = _make_game(7, 3, status=GameStatus.LIVE)

    assert game.update_score(14, 3, GameStatus.LIVE) is False
    assert game.update_score(21, 3, GameStatus.FINAL) is True
    assert game.update_score(21, 3, GameStatus.FINAL) is False


def test_update_score_reports_final_correction():
    game = _make_game(21, 3, status=GameStatus.FINAL)

    assert game.update_score(21, 10, GameStatus.FINAL) is True
    assert game.result_updated_at is not None


def test_needs_scoring_tracks_result_changes():
    game = _make_game(7, 3, status=GameStatus.LIVE)
    assert not game.needs_scoring()

    game.update_score(21, 3, GameStatus.FINAL)
    assert game.needs_scoring()

    game.scored_at = hours_from_now(1)
    assert not game.needs_scoring()

    game.scored_at = hours_from_now(-1)
    assert game.needs_scoring()


def test_rescore_week_scores_every_league_and_stamps_games(league_setup, factory):
    player = league_setup["player"]
    second = factory.league(league_setup["owner"], name="Second League")
    factory.member(second, player)
    home, away = factory.team(), factory.team()
    game = factory.final(home, away, 24, 17)
    factory.pick(league_setup["league"], player, home, game)
    factory.pick(second, player, away, game)

    results = rescore_week(SEASON, 1)

    assert results == {league_setup["league"].id: 1, second.id: 1}
    assert db.session.get(Game, game.id).scored_at is not None
    assert not db.session.get(Game, game.id).needs_scoring()


def test_refresh_score_rescores_on_final(league_setup, factory):
    league, player = league_setup["league"], league_setup["player"]
    teams, games = league_setup["teams"], league_setup["games"]
    factory.pick(league, player, teams[0], games[0])

    _, rescored = refresh_score(games[0].id, 10, 7, GameStatus.LIVE)
    assert rescored == {}

    game, rescored = refresh_score(games[0].id, 24, 7, "final")

    assert game.status == GameStatus.FINAL
    assert rescored == {league.id: 1}
    weekly = WeeklyPoints.query.filter_by(league_id=league.id, profile_id=player.id).one()
    assert weekly.points == 24


def test_refresh_score_rejects_unknown_game_and_status(app):
    with pytest.raises(NotFound):
        refresh_score(404, 1, 0, GameStatus.FINAL)
    with pytest.raises(BadRequest):
        refresh_score(404, 1, 0, "HALFTIME")


def test_upsert_game_creates_then_updates(factory):
    home, away = factory.team(), factory.team()

    game, created = upsert_game(SEASON, 1, home.id, away.id, hours_from_now(24))
    assert created

    same, created = upsert_game(
        SEASON,
        1,
        home.id,
        away.id,
        hours_from_now(30),
        status=GameStatus.LIVE,
        home_score=3,
        away_score=0,
    )
    assert not created
    assert same.id == game.id
    assert same.status == GameStatus.LIVE
    assert Game.query.count() == 1


def test_upsert_game_rejects_same_team_twice(factory):
    team = factory.team()
    with pytest.raises(BadRequest):
        upsert_game(SEASON, 1, team.id, team.id, hours_from_now(24))


def test_current_week_falls_back_to_latest_game(factory):
    factory.final(factory.team(), factory.team(), 20, 17, week=2)
    factory.final(factory.team(), factory.team(), 13, 10, week=4, kickoff_in_hours=-2)

    assert current_week() == (SEASON, 4)


def test_current_week_without_games(app):
    now = datetime(2031, 9, 1, tzinfo=timezone.utc)

    assert current_week(now=now) == (2031, 1)


def test_upsert_team_keeps_colors_not_given(app):
    team, created = upsert_team(" kc ", "Kansas City", primary_color="#E31837")
    same, created_again = upsert_team("KC", "Kansas City Chiefs")

    assert created and not created_again
    assert same.id == team.id
    assert same.abbreviation == "KC"
    assert same.primary_color == "#E31837"


def test_upsert_team_requires_abbreviation(app):
    with pytest.raises(BadRequest):
        upsert_team("  ", "Nobody")


def test_rescore_finalized_games_picks_up_unscored_weeks(league_setup, factory):
    league, player = league_setup["league"], league_setup["player"]
    home, away = factory.team(), factory.team()
    game = factory.final(home, away, 30, 20, week=3)
    factory.pick(league, player, home, game)

    summary = rescore_finalized_games()
    assert summary == {"weeks": [(SEASON, 3)], "rows": 1}

    assert rescore_finalized_games() == {"weeks": [], "rows": 0}


def test_rescore_finalized_games_after_correction(league_setup, factory):
    league, player = league_setup["league"], league_setup["player"]
    home, away = factory.team(), factory.team()
    game = factory.final(home, away, 30, 20, week=3)
    factory.pick(league, player, home, game)
    rescore_finalized_games()

    game = db.session.get(Game, game.id)
    game.update_score(30, 33, GameStatus.FINAL)
    db.session.commit()

    assert rescore_finalized_games()["weeks"] == [(SEASON, 3)]
    weekly = WeeklyPoints.query.filter_by(league_id=league.id, week=3).one()
    assert weekly.points == 0


def test_scheduler_run_once_records_stats(app, league_setup, factory):
    league, player = league_setup["league"], league_setup["player"]
    home, away = factory.team(), factory.team()
    game = factory.final(home, away, 30, 20, week=2)
    factory.pick(league, player, home, game)

    service = SchedulerService()
    stats = service.run_once(app)

    assert stats["total_runs"] == 1
    assert stats["successful_runs"] == 1
    assert stats["weeks_rescored"] == 1
    assert stats["last_error"] is None


def test_scheduler_status_before_start():
    service = SchedulerService()
    status = service.get_status()

    assert status["is_running"] is False
    assert status["jobs"] == []
