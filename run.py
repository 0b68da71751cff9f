from pickem import create_app, db
from pickem.models import Game, League, LeagueMember, Pick, Profile, Team, Wrinkle

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Profile": Profile,
        "League": League,
        "LeagueMember": LeagueMember,
        "Game": Game,
        "Pick": Pick,
        "Team": Team,
        "Wrinkle": Wrinkle,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
