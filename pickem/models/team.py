from pickem import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    abbreviation = db.Column(db.String(10), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)

    # Display colors (hex)
    primary_color = db.Column(db.String(7))
    secondary_color = db.Column(db.String(7))

    home_games = db.relationship(
        "Game",
        foreign_keys="Game.home_team_id",
        backref=db.backref("home_team", lazy="joined"),
        lazy="dynamic",
    )
    away_games = db.relationship(
        "Game",
        foreign_keys="Game.away_team_id",
        backref=db.backref("away_team", lazy="joined"),
        lazy="dynamic",
    )

    def __repr__(self):
        return f"<Team {self.abbreviation}>"

    def to_dict(self):
        return {
            "id": self.id,
            "abbreviation": self.abbreviation,
            "name": self.name,
            "primary_color": self.primary_color,
            "secondary_color": self.secondary_color,
        }
