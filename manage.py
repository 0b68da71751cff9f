#!/usr/bin/env python3
"""
Pick'em Management CLI

Command-line maintenance for leagues, teams, scoring and the score refresh job.
"""

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pickem import create_app, db
from pickem.errors import PickemError
from pickem.models import League, Profile
from pickem.services import game_service, league_service, score_calculator
from pickem.services.scheduler_service import rescore_finalized_games

app = create_app()


@click.group()
def cli():
    """Pick'em Management CLI"""
    pass


# Database Commands
@cli.group("db")
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
@with_appcontext
def init_db():
    """Create all tables"""
    db.create_all()
    click.echo("✅ Database tables created")


@db_cmd.command()
@click.confirmation_option(prompt="This drops every table. Continue?")
@with_appcontext
def reset():
    """Drop and recreate all tables"""
    db.drop_all()
    db.create_all()
    click.echo("✅ Database reset")


# Profile Commands
@cli.group()
def profile():
    """Profile commands"""
    pass


@profile.command("create")
@click.argument("email")
@click.option("--name", "display_name", help="Display name")
@with_appcontext
def create_profile(email, display_name):
    """Create a profile for an email address"""
    try:
        member = Profile(email=email.strip().lower())
        member.set_display_name(display_name)
        db.session.add(member)
        db.session.commit()
        click.echo(f"✅ Created profile {member.id} for {member.email}")
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ A profile for {email} already exists!")
        logging.error(f"Profile creation failed - integrity error: {e}")


# League Commands
@cli.group()
def league():
    """League commands"""
    pass


@league.command("create")
@click.argument("name")
@click.argument("season", type=int)
@click.option("--owner-email", required=True, help="Email of the owning profile")
@with_appcontext
def create_league(name, season, owner_email):
    """Create a league owned by an existing profile"""
    owner = Profile.query.filter_by(email=owner_email.strip().lower()).first()
    if owner is None:
        click.echo(f"❌ No profile for {owner_email}")
        return

    try:
        created = league_service.create_league(name, season, owner)
        click.echo(f"✅ Created league {created.id} ({created.name} {created.season})")
        click.echo(f"   Invite code: {created.invite_code}")
    except PickemError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error creating league: {str(e)}")
        logging.error(f"League creation failed - SQL error: {e}")


@league.command("list")
@with_appcontext
def list_leagues():
    """List all leagues"""
    leagues = League.query.order_by(League.season.desc(), League.name).all()
    if not leagues:
        click.echo("No leagues found.")
        return

    for item in leagues:
        click.echo(
            f"  {item.id}: {item.name} ({item.season}) - "
            f"{item.members.count()} members, code {item.invite_code}"
        )


# Team Commands
@cli.group()
def team():
    """Team commands"""
    pass


@team.command("add")
@click.argument("abbreviation")
@click.argument("name")
@click.option("--primary", "primary_color", help="Primary color (#RRGGBB)")
@click.option("--secondary", "secondary_color", help="Secondary color (#RRGGBB)")
@with_appcontext
def add_team(abbreviation, name, primary_color, secondary_color):
    """Add or update a team"""
    try:
        entry, created = game_service.upsert_team(
            abbreviation, name, primary_color=primary_color, secondary_color=secondary_color
        )
    except PickemError as e:
        click.echo(f"❌ {e.message}")
        return
    click.echo(f"✅ {'Added' if created else 'Updated'} team {entry.id}: {entry.abbreviation}")


# Scoring Commands
@cli.group()
def score():
    """Scoring commands"""
    pass


@score.command("week")
@click.argument("league_id", type=int)
@click.argument("season", type=int)
@click.argument("week", type=int)
@with_appcontext
def score_week(league_id, season, week):
    """Recompute weekly and season points for a league week"""
    result = score_calculator.score_week(league_id, season, week)
    click.echo(f"✅ Upserted {result['points_upserted']} weekly rows")


@cli.group()
def standings():
    """Standings commands"""
    pass


@standings.command("show")
@click.argument("league_id", type=int)
@click.argument("season", type=int)
@click.option("--week", type=int, help="Limit to a single week")
@with_appcontext
def show_standings(league_id, season, week):
    """Print league standings"""
    table = score_calculator.get_standings(league_id, season, week=week)
    if not table["rows"]:
        click.echo("No members found.")
        return

    click.echo(f"{'#':>3}  {'Member':<24}{'Pts':>8}{'W':>4}{'Strk':>6}{'Back':>8}")
    for row in table["rows"]:
        click.echo(
            f"{row['rank']:>3}  {row['display_name'][:23]:<24}"
            f"{row['points']:>8g}{row['correct']:>4}{row['longest_streak']:>6}"
            f"{row['back_from_first']:>8g}"
        )


@cli.group()
def scheduler():
    """Score refresh commands"""
    pass


@scheduler.command("run-once")
@with_appcontext
def run_once():
    """Rescore every week with newly finalized games"""
    summary = rescore_finalized_games()
    if not summary["weeks"]:
        click.echo("Nothing to rescore.")
        return
    for season, week in summary["weeks"]:
        click.echo(f"✅ Rescored season {season} week {week}")
    click.echo(f"   {summary['rows']} weekly rows written")


if __name__ == "__main__":
    with app.app_context():
        cli()
