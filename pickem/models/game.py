from datetime import datetime, timezone

from pickem import db
from pickem.utils.timezone_utils import ensure_utc, format_kickoff, get_utc_time


class GameStatus:
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    FINAL = "FINAL"

    ALL = (UPCOMING, LIVE, FINAL)


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)

    season = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)

    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    kickoff_utc = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(10), nullable=False, default=GameStatus.UPCOMING)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    # Set only by score refreshes, so stamping scored_at never re-queues a game
    result_updated_at = db.Column(db.DateTime)
    # Last time the week containing this game was aggregated
    scored_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index("idx_game_season_week", "season", "week"),
        db.Index("idx_game_kickoff", "kickoff_utc"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
        db.CheckConstraint(
            "status IN ('UPCOMING', 'LIVE', 'FINAL')", name="ck_game_status"
        ),
    )

    def __repr__(self):
        return f'<Game {self.away_team.abbreviation if self.away_team else "TBD"} @ {self.home_team.abbreviation if self.home_team else "TBD"} Week {self.week}>'

    @property
    def is_final(self):
        return self.status == GameStatus.FINAL

    @property
    def kickoff(self):
        """Kickoff as an aware UTC datetime"""
        return ensure_utc(self.kickoff_utc)

    def is_locked(self, now=None):
        """A game locks once kickoff has been reached"""
        now = ensure_utc(now) if now else get_utc_time()
        return self.kickoff <= now

    def involves(self, team_id):
        return team_id in (self.home_team_id, self.away_team_id)

    def get_team_score(self, team_id):
        """Get score for a specific team"""
        if team_id == self.home_team_id:
            return self.home_score
        elif team_id == self.away_team_id:
            return self.away_score
        return None

    def update_score(self, home_score, away_score, status):
        """Apply a score refresh.

        Returns True when the change affects points: the game became FINAL,
        or an already FINAL score was corrected.
        """
        was_final = self.is_final
        score_changed = (home_score, away_score) != (self.home_score, self.away_score)

        self.home_score = home_score
        self.away_score = away_score
        self.status = status
        if score_changed or self.is_final != was_final:
            self.result_updated_at = datetime.now(timezone.utc)

        if self.is_final and not was_final:
            return True
        return self.is_final and score_changed

    def needs_scoring(self):
        if not self.is_final:
            return False
        if self.scored_at is None:
            return True
        if self.result_updated_at is None:
            return False
        return ensure_utc(self.scored_at) < ensure_utc(self.result_updated_at)

    @staticmethod
    def find_for_team(season, week, team_id):
        """The game in (season, week) where team_id is home or away"""
        return (
            Game.query.filter(
                Game.season == season,
                Game.week == week,
                db.or_(Game.home_team_id == team_id, Game.away_team_id == team_id),
            )
            .order_by(Game.kickoff_utc)
            .first()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "season": self.season,
            "week": self.week,
            "kickoff_utc": self.kickoff.isoformat() if self.kickoff_utc else None,
            "kickoff_local": format_kickoff(self.kickoff_utc),
            "home_team": self.home_team.to_dict() if self.home_team else None,
            "away_team": self.away_team.to_dict() if self.away_team else None,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "status": self.status,
            "is_locked": self.is_locked(),
        }
