from datetime import datetime, timezone

from pickem import db


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    season = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)

    # Weekly quota slot (1..PICKS_PER_WEEK). NULL only for admin-forced picks
    # beyond the quota; NULLs never collide in the unique constraint below.
    slot = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    team = db.relationship("Team", foreign_keys=[team_id], lazy="joined")
    game = db.relationship("Game", foreign_keys=[game_id], backref=db.backref("picks", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint(
            "league_id", "profile_id", "season", "team_id", name="uq_pick_team_season"
        ),
        db.UniqueConstraint(
            "league_id", "profile_id", "season", "week", "slot", name="uq_pick_week_slot"
        ),
        db.CheckConstraint("week > 0 AND season > 0", name="ck_pick_positive"),
        db.Index("idx_pick_league_season_week", "league_id", "season", "week"),
        db.Index("idx_pick_game", "game_id"),
    )

    def __repr__(self):
        return f'<Pick profile_id={self.profile_id} week={self.week} team={self.team.abbreviation if self.team else "TBD"}>'

    @staticmethod
    def for_week(league_id, profile_id, season, week):
        return Pick.query.filter_by(
            league_id=league_id, profile_id=profile_id, season=season, week=week
        ).all()

    @staticmethod
    def find_team_pick(league_id, profile_id, season, team_id, exclude_id=None):
        """The season pick already made on a team, if any"""
        query = Pick.query.filter_by(
            league_id=league_id, profile_id=profile_id, season=season, team_id=team_id
        )
        if exclude_id is not None:
            query = query.filter(Pick.id != exclude_id)
        return query.first()

    @staticmethod
    def used_team_ids(league_id, profile_id, season):
        rows = (
            db.session.query(Pick.team_id)
            .filter_by(league_id=league_id, profile_id=profile_id, season=season)
            .all()
        )
        return {row.team_id for row in rows}

    def to_dict(self):
        return {
            "id": self.id,
            "league_id": self.league_id,
            "profile_id": self.profile_id,
            "season": self.season,
            "week": self.week,
            "team_id": self.team_id,
            "team": self.team.to_dict() if self.team else None,
            "game_id": self.game_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
