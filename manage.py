#!/usr/bin/env python3
"""
Daily Slate Pick'em Management CLI

This script provides command-line management functionality for the Daily Slate Pick'em application.
"""

import logging
import os

# One-off commands must not start the background jobs
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import click  # noqa: E402
from flask.cli import with_appcontext  # noqa: E402
from flask_migrate import downgrade, migrate, upgrade  # noqa: E402
from sqlalchemy.exc import IntegrityError, SQLAlchemyError  # noqa: E402

from dailypicks import create_app, db  # noqa: E402
from dailypicks.models import DailyScore, Game, Pick, Profile, Slate  # noqa: E402
from dailypicks.services.finalization import finalize_slate  # noqa: E402
from dailypicks.services.slate_builder import SlateBuilder  # noqa: E402
from dailypicks.services.slate_state import SlateStateMachine  # noqa: E402
from dailypicks.utils.timezone_utils import (  # noqa: E402
    format_game_time,
    get_reference_date,
)

app = create_app()

STATUS_ICONS = {
    Slate.STATUS_OPEN: "🟢",
    Slate.STATUS_LOCKED: "🔒",
    Slate.STATUS_FINALIZED: "✅",
}


@click.group()
def cli():
    """Daily Slate Pick'em Management CLI"""
    pass


# Slate lifecycle commands
@cli.group()
def slate():
    """Slate lifecycle commands"""
    pass


@slate.command()
@click.option("--force", is_flag=True, help="Rebuild today's slate if it is open with no picks")
@with_appcontext
def build(force):
    """Build today's slate"""
    click.echo(f"Building slate for {get_reference_date()}...")
    try:
        result = SlateBuilder.from_config(app.config).build_today(force=force)
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error building slate: {str(e)}")
        logging.error(f"Slate build failed - SQL error: {e}")
        return

    icon = "✅" if result["created"] else "⚠️ "
    click.echo(f"{icon} {result['message']}")
    for line in result["games"]:
        click.echo(f"   {line}")


@slate.command()
@click.option("--slate-id", type=int, help="Only poll this slate")
@with_appcontext
def poll(slate_id):
    """Check scores, lock started slates and finalize completed ones"""
    try:
        result = SlateStateMachine.from_config(app.config).poll(slate_id=slate_id)
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error polling scores: {str(e)}")
        logging.error(f"Score poll failed - SQL error: {e}")
        return

    click.echo(f"✅ {result['message']}")
    for line in result["updates"]:
        click.echo(f"   {line}")
    for error in result["errors"]:
        click.echo(f"   ❌ {error}")


@slate.command()
@click.option("--slate-id", type=int, help="Slate to finalize (default: today's)")
@click.option("--force", is_flag=True, help="Finalize even if some games are not final")
@with_appcontext
def finalize(slate_id, force):
    """Finalize a slate"""
    if force and not slate_id:
        click.echo("❌ --force requires --slate-id")
        return

    if not slate_id:
        today = Slate.get_for_date(get_reference_date())
        if not today:
            click.echo("❌ No slate found for today")
            return
        slate_id = today.id

    if force and not click.confirm(
        f"Force-finalize slate {slate_id}? Picks on unfinished games will not count."
    ):
        click.echo("Cancelled.")
        return

    try:
        result = finalize_slate(slate_id, force=force)
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error finalizing slate: {str(e)}")
        logging.error(f"Finalization failed - SQL error: {e}")
        return

    icon = "✅" if result["finalized"] else "⚠️ "
    click.echo(f"{icon} {result['message']}")
    for line in result["results"]:
        click.echo(f"   {line}")


@slate.command(name="list")
@click.option("--limit", default=14, help="Number of slates to show")
@with_appcontext
def list_slates(limit):
    """List recent slates"""
    slates = Slate.query.order_by(Slate.date.desc()).limit(limit).all()

    if not slates:
        click.echo("No slates found.")
        return

    click.echo("Slates:")
    for s in slates:
        final, total = s.game_progress()
        players = DailyScore.query.filter_by(slate_id=s.id).count()
        click.echo(
            f"  {STATUS_ICONS.get(s.status, '⚪')} #{s.id} {s.date} {s.status:<9} "
            f"games {final}/{total}  scored users {players}"
        )


@slate.command()
@click.argument("slate_id", type=int)
@with_appcontext
def show(slate_id):
    """Show a slate's games and results"""
    s = db.session.get(Slate, slate_id)
    if not s:
        click.echo(f"❌ Slate {slate_id} not found!")
        return

    click.echo(f"{STATUS_ICONS.get(s.status, '⚪')} Slate #{s.id} for {s.date} ({s.status})")
    for game in s.games.all():
        score = ""
        if game.home_score is not None and game.away_score is not None:
            score = f" {game.away_score}-{game.home_score}"
        winner = f" winner: {game.winner}" if game.winner else ""
        picks = game.picks.count()
        click.echo(
            f"  [{game.sport.upper()}] {game.matchup} {format_game_time(game.commence_time)} "
            f"{game.status}{score}{winner} ({picks} picks)"
        )


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("email")
@click.option("--display-name", help="Display name")
@click.option("--admin", is_flag=True, help="Grant admin privileges")
@with_appcontext
def create(email, display_name, admin):
    """Create a profile"""
    try:
        profile, created = Profile.get_or_create(email, display_name)
        if not created:
            click.echo(f"❌ Profile for '{email}' already exists!")
            return

        profile.is_admin = admin
        db.session.commit()
        role = "admin " if admin else ""
        click.echo(f"✅ Created {role}profile '{profile.name}' ({email})")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Profile for '{email}' already exists!")
        logging.error(f"Profile creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating profile: {str(e)}")
        logging.error(f"Profile creation failed - SQL error: {e}")


@user.command(name="list")
@with_appcontext
def list_users():
    """List all profiles"""
    profiles = Profile.query.order_by(Profile.created_at.desc()).all()

    if not profiles:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for p in profiles:
        role = "👑" if p.is_admin else "👤"
        streak = p.streak.current_streak if p.streak else 0
        click.echo(f"  {role} {p.name} ({p.email}) - streak {streak}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except Exception as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except Exception as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    try:
        if os.path.exists("migrations"):
            click.echo("❌ Migrations directory already exists!")
            return

        from flask_migrate import init as flask_migrate_init

        flask_migrate_init()
        click.echo("✅ Migrations repository initialized!")
    except Exception as e:
        click.echo(f"❌ Error initializing migrations: {str(e)}")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    try:
        migrate(message=message)
        click.echo(f"✅ Migration created: {message}")
    except Exception as e:
        click.echo(f"❌ Error creating migration: {str(e)}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    try:
        upgrade(revision=revision)
        click.echo(f"✅ Migrations applied to {revision}")
    except Exception as e:
        click.echo(f"❌ Error applying migrations: {str(e)}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    try:
        downgrade(revision=revision)
        click.echo(f"✅ Rolled back to {revision}")
    except Exception as e:
        click.echo(f"❌ Error rolling back: {str(e)}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🎯 Daily Slate Pick'em Status")
    click.echo("=" * 40)

    try:
        db.session.execute(db.text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except Exception as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    today = get_reference_date()
    click.echo(f"📅 Reference date: {today} ({app.config.get('TIMEZONE')})")

    current = Slate.get_for_date(today)
    if current:
        final, total = current.game_progress()
        click.echo(f"✅ Today's slate: #{current.id} {current.status} ({final}/{total} final)")
    else:
        click.echo("⚠️  Today's slate: not built yet")

    outstanding = Slate.get_outstanding()
    backlog = [s for s in outstanding if s.date < today]
    if backlog:
        click.echo(f"⚠️  Unfinalized past slates: {', '.join(str(s.date) for s in backlog)}")

    click.echo(f"👥 Users: {Profile.query.count()}")
    click.echo(f"🎯 Picks: {Pick.query.count()}")
    click.echo(f"🏟️  Games: {Game.query.count()}")
    click.echo(
        f"🔌 Providers: schedule={app.config.get('SCHEDULE_PROVIDER')} "
        f"scores={app.config.get('SCORE_PROVIDER')}"
    )


if __name__ == "__main__":
    with app.app_context():
        cli()
