from datetime import datetime, timezone

from pickem import db


class WrinkleKind:
    BONUS_GAME = "bonus_game"
    BONUS_GAME_ATS = "bonus_game_ats"  # against the spread
    BONUS_GAME_OOF = "bonus_game_oof"  # team must be under the win pct bar
    WINLESS_DOUBLE = "winless_double"  # doubles regular picks on winless teams

    ALL = (BONUS_GAME, BONUS_GAME_ATS, BONUS_GAME_OOF, WINLESS_DOUBLE)
    BONUS_KINDS = (BONUS_GAME, BONUS_GAME_ATS, BONUS_GAME_OOF)


class Wrinkle(db.Model):
    __tablename__ = "wrinkles"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    season = db.Column(db.Integer, nullable=False)
    week = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    kind = db.Column(db.String(20), nullable=False, default=WrinkleKind.BONUS_GAME)
    status = db.Column(db.String(10), nullable=False, default="active")
    extra_picks = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    games = db.relationship(
        "WrinkleGame", backref="wrinkle", lazy="select", cascade="all, delete-orphan"
    )
    picks = db.relationship(
        "WrinklePick", backref="wrinkle", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_wrinkle_scope", "league_id", "season", "week"),
        db.CheckConstraint("extra_picks >= 0", name="ck_wrinkle_extra_picks"),
    )

    def __repr__(self):
        return f"<Wrinkle {self.kind} league={self.league_id} week={self.week}>"

    @property
    def is_active(self):
        return self.status == "active"

    @property
    def pick_allowance(self):
        """Bonus picks a member may hold for this wrinkle"""
        return max(1, self.extra_picks or 0)

    def game_entry(self, game_id):
        return next((wg for wg in self.games if wg.game_id == game_id), None)

    def to_dict(self):
        return {
            "id": self.id,
            "league_id": self.league_id,
            "season": self.season,
            "week": self.week,
            "name": self.name,
            "kind": self.kind,
            "status": self.status,
            "extra_picks": self.extra_picks,
            "games": [wg.to_dict() for wg in self.games],
        }


class WrinkleGame(db.Model):
    __tablename__ = "wrinkle_games"

    id = db.Column(db.Integer, primary_key=True)
    wrinkle_id = db.Column(db.Integer, db.ForeignKey("wrinkles.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    # Home-team line: negative favors home, positive favors away
    spread = db.Column(db.Float)

    game = db.relationship("Game", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("wrinkle_id", "game_id", name="uq_wrinkle_game"),
    )

    def to_dict(self):
        return {
            "game_id": self.game_id,
            "spread": self.spread,
            "game": self.game.to_dict() if self.game else None,
        }


class WrinklePick(db.Model):
    __tablename__ = "wrinkle_picks"

    id = db.Column(db.Integer, primary_key=True)
    wrinkle_id = db.Column(db.Integer, db.ForeignKey("wrinkles.id"), nullable=False)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)
    # 1..pick_allowance of the wrinkle
    slot = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    game = db.relationship("Game", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint(
            "wrinkle_id", "profile_id", "game_id", name="uq_wrinkle_pick_game"
        ),
        db.UniqueConstraint(
            "wrinkle_id", "profile_id", "slot", name="uq_wrinkle_pick_slot"
        ),
        db.Index("idx_wrinkle_pick_profile", "profile_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "wrinkle_id": self.wrinkle_id,
            "profile_id": self.profile_id,
            "team_id": self.team_id,
            "game_id": self.game_id,
            "slot": self.slot,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
