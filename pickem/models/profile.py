from datetime import datetime, timezone

from flask_login import UserMixin

from pickem import db, login_manager


class Profile(UserMixin, db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100))

    # Account status
    is_active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    memberships = db.relationship(
        "LeagueMember", backref="profile", lazy="dynamic", cascade="all, delete-orphan"
    )
    picks = db.relationship("Pick", backref="profile", lazy="dynamic")

    def __repr__(self):
        return f"<Profile {self.email}>"

    @property
    def label(self):
        """Display name, else the email local part, else a generic label"""
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        if self.email:
            return self.email.split("@")[0]
        return "Member"

    def set_display_name(self, display_name):
        """Set display name with sanitization"""
        import html

        if display_name:
            self.display_name = html.escape(display_name.strip())
        else:
            self.display_name = display_name

    def to_dict(self):
        return {
            "id": self.id,
            "display_name": self.label,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@login_manager.user_loader
def load_profile(profile_id):
    return db.session.get(Profile, int(profile_id))
