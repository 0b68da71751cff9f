import secrets
from datetime import datetime, timezone

from pickem import db


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    season = db.Column(db.Integer, nullable=False)

    # Code for joining without an emailed invite
    invite_code = db.Column(db.String(8), unique=True, nullable=False, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    members = db.relationship(
        "LeagueMember", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    picks = db.relationship(
        "Pick", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    wrinkles = db.relationship(
        "Wrinkle", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (db.Index("idx_league_season", "season"),)

    def __repr__(self):
        return f"<League {self.name} {self.season}>"

    def __init__(self, **kwargs):
        super(League, self).__init__(**kwargs)
        if not self.invite_code:
            self.invite_code = self.generate_invite_code()

    @staticmethod
    def generate_invite_code():
        """Generate a unique 8-character invite code"""
        while True:
            code = secrets.token_urlsafe(6)[:8].upper()
            if not League.query.filter_by(invite_code=code).first():
                return code

    def to_dict(self, include_code=False):
        data = {
            "id": self.id,
            "name": self.name,
            "season": self.season,
            "member_count": self.members.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_code:
            data["invite_code"] = self.invite_code
        return data
