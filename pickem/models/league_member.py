from datetime import datetime, timezone

from pickem import db


class LeagueRole:
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    ALL = (OWNER, ADMIN, MEMBER)
    MANAGERS = (OWNER, ADMIN)


class LeagueMember(db.Model):
    __tablename__ = "league_members"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=LeagueRole.MEMBER)

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("league_id", "profile_id", name="uq_league_member"),
        db.CheckConstraint(
            "role IN ('owner', 'admin', 'member')", name="ck_league_member_role"
        ),
        db.Index("idx_member_profile", "profile_id"),
    )

    def __repr__(self):
        return f"<LeagueMember profile_id={self.profile_id} league_id={self.league_id} role={self.role}>"

    @property
    def is_manager(self):
        return self.role in LeagueRole.MANAGERS

    @staticmethod
    def find(league_id, profile_id):
        return LeagueMember.query.filter_by(
            league_id=league_id, profile_id=profile_id
        ).first()

    def to_dict(self):
        return {
            "league_id": self.league_id,
            "profile_id": self.profile_id,
            "display_name": self.profile.label if self.profile else None,
            "role": self.role,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
