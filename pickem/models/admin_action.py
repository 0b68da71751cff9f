from datetime import datetime, timezone

from pickem import db


class AdminAction(db.Model):
    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    admin_profile_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id"), nullable=False
    )
    target_profile_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id"), nullable=True
    )  # Profile being acted upon
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)

    action_type = db.Column(
        db.String(50), nullable=False
    )  # 'force_pick', 'delete_pick', 'set_role', 'remove_member', ...
    action_description = db.Column(db.String(500), nullable=False)

    # No FK on pick_id: the pick may be deleted by the action itself
    pick_id = db.Column(db.Integer, nullable=True)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=True)

    action_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index("idx_admin_action_league", "league_id"),
        db.Index("idx_admin_action_type", "action_type"),
    )

    def __repr__(self):
        return f"<AdminAction {self.action_type} by {self.admin_profile_id} in league {self.league_id}>"

    @staticmethod
    def log_action(
        admin_profile_id,
        league_id,
        action_type,
        description,
        target_profile_id=None,
        pick_id=None,
        game_id=None,
        action_metadata=None,
    ):
        """Add an audit row to the current session"""
        action = AdminAction(
            admin_profile_id=admin_profile_id,
            target_profile_id=target_profile_id,
            league_id=league_id,
            action_type=action_type,
            action_description=description,
            pick_id=pick_id,
            game_id=game_id,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    def to_dict(self):
        return {
            "id": self.id,
            "admin_profile_id": self.admin_profile_id,
            "target_profile_id": self.target_profile_id,
            "league_id": self.league_id,
            "action_type": self.action_type,
            "description": self.action_description,
            "pick_id": self.pick_id,
            "game_id": self.game_id,
            "metadata": self.action_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
