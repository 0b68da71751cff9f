from datetime import datetime, timezone

from pickem import db


class WeeklyPoints(db.Model):
    __tablename__ = "weekly_points"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    season = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    points = db.Column(db.Float, nullable=False, default=0.0)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "league_id", "season", "week", "profile_id", name="uq_weekly_points"
        ),
    )

    def to_dict(self):
        return {
            "league_id": self.league_id,
            "season": self.season,
            "week": self.week,
            "profile_id": self.profile_id,
            "points": self.points,
        }


class SeasonPoints(db.Model):
    __tablename__ = "season_points"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    season = db.Column(db.Integer, nullable=False)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    points = db.Column(db.Float, nullable=False, default=0.0)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("league_id", "season", "profile_id", name="uq_season_points"),
    )

    def to_dict(self):
        return {
            "league_id": self.league_id,
            "season": self.season,
            "profile_id": self.profile_id,
            "points": self.points,
        }
