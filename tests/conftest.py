"""Shared fixtures for pick'em tests."""

from datetime import timedelta

import pytest

from pickem import create_app, db
from pickem.models import (
    Game,
    GameStatus,
    League,
    LeagueMember,
    LeagueRole,
    Pick,
    Profile,
    Team,
    Wrinkle,
    WrinkleGame,
    WrinkleKind,
)
from pickem.utils.timezone_utils import get_utc_time

SEASON = 2025


def hours_from_now(hours):
    """Naive UTC datetime, as stored by the database"""
    return (get_utc_time() + timedelta(hours=hours)).replace(tzinfo=None)


class Factory:
    """Builds committed rows with sensible defaults"""

    def __init__(self):
        self._teams = 0

    def profile(self, email, display_name=None):
        profile = Profile(email=email, display_name=display_name)
        db.session.add(profile)
        db.session.commit()
        return profile

    def team(self, abbreviation=None, name=None):
        self._teams += 1
        abbreviation = abbreviation or f"T{self._teams:02d}"
        team = Team(abbreviation=abbreviation, name=name or f"Team {abbreviation}")
        db.session.add(team)
        db.session.commit()
        return team

    def league(self, owner, name="Sunday Survivors", season=SEASON):
        league = League(name=name, season=season, created_by=owner.id)
        db.session.add(league)
        db.session.flush()
        db.session.add(
            LeagueMember(league_id=league.id, profile_id=owner.id, role=LeagueRole.OWNER)
        )
        db.session.commit()
        return league

    def member(self, league, profile, role=LeagueRole.MEMBER):
        member = LeagueMember(league_id=league.id, profile_id=profile.id, role=role)
        db.session.add(member)
        db.session.commit()
        return member

    def game(
        self,
        home,
        away,
        week=1,
        season=SEASON,
        kickoff_in_hours=48,
        status=GameStatus.UPCOMING,
        home_score=None,
        away_score=None,
    ):
        game = Game(
            season=season,
            week=week,
            home_team_id=home.id,
            away_team_id=away.id,
            kickoff_utc=hours_from_now(kickoff_in_hours),
            status=status,
            home_score=home_score,
            away_score=away_score,
        )
        db.session.add(game)
        db.session.commit()
        return game

    def final(self, home, away, home_score, away_score, week=1, kickoff_in_hours=-72):
        return self.game(
            home,
            away,
            week=week,
            kickoff_in_hours=kickoff_in_hours,
            status=GameStatus.FINAL,
            home_score=home_score,
            away_score=away_score,
        )

    def pick(self, league, profile, team, game, slot=None, created_at=None):
        """Insert a pick directly, bypassing validation"""
        if slot is None:
            taken = {
                p.slot
                for p in Pick.for_week(league.id, profile.id, game.season, game.week)
            }
            slot = next((s for s in (1, 2) if s not in taken), None)
        pick = Pick(
            league_id=league.id,
            profile_id=profile.id,
            season=game.season,
            week=game.week,
            team_id=team.id,
            game_id=game.id,
            slot=slot,
        )
        if created_at is not None:
            pick.created_at = created_at
        db.session.add(pick)
        db.session.commit()
        return pick

    def wrinkle(
        self,
        league,
        week=1,
        kind=WrinkleKind.BONUS_GAME,
        games=(),
        spreads=None,
        extra_picks=0,
        status="active",
    ):
        wrinkle = Wrinkle(
            league_id=league.id,
            season=league.season,
            week=week,
            name=f"{kind} week {week}",
            kind=kind,
            status=status,
            extra_picks=extra_picks,
        )
        db.session.add(wrinkle)
        db.session.flush()
        for game in games:
            db.session.add(
                WrinkleGame(
                    wrinkle_id=wrinkle.id,
                    game_id=game.id,
                    spread=(spreads or {}).get(game.id),
                )
            )
        db.session.commit()
        return wrinkle


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def factory(app):
    return Factory()


@pytest.fixture
def login(client):
    """Log a profile into the test client session"""

    def _login(profile):
        with client.session_transaction() as sess:
            sess["_user_id"] = str(profile.id)
            sess["_fresh"] = True
        return client

    return _login


@pytest.fixture
def league_setup(factory):
    """A league with an owner, one member and a week-1 slate of three games"""
    owner = factory.profile("owner@example.com", "Olivia")
    player = factory.profile("player@example.com", "Pat")
    league = factory.league(owner)
    factory.member(league, player)

    teams = [factory.team() for _ in range(6)]
    games = [
        factory.game(teams[0], teams[1]),
        factory.game(teams[2], teams[3]),
        factory.game(teams[4], teams[5]),
    ]
    return {
        "owner": owner,
        "player": player,
        "league": league,
        "teams": teams,
        "games": games,
    }
