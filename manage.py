#!/usr/bin/env python3
"""
Tournament Predictor Tracker Management CLI

Command-line access to the database, the lifecycle sweeps, scoring and the
leaderboard.
"""

import os

# The CLI drives the sweeps itself; keep the background scheduler off
os.environ.setdefault("SCHEDULER_ENABLED", "False")

import click  # noqa: E402
from flask.cli import with_appcontext  # noqa: E402
from sqlalchemy import text  # noqa: E402

from predictor_tracker import create_app, db  # noqa: E402
from predictor_tracker.errors import TrackerError  # noqa: E402
from predictor_tracker.services.aggregation_service import AggregationEngine  # noqa: E402
from predictor_tracker.services.lifecycle_service import LifecyclePolicy  # noqa: E402
from predictor_tracker.store import get_store  # noqa: E402
from predictor_tracker.utils.cache_utils import invalidate_model_cache  # noqa: E402
from predictor_tracker.utils.scoring import ScoringEngine  # noqa: E402


@click.group()
def cli():
    """Tournament Predictor Tracker Management CLI"""
    pass


def _policy():
    from flask import current_app

    return LifecyclePolicy.from_config(get_store(), current_app.config)


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except Exception as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@with_appcontext
def reset(yes):
    """⚠️  DANGER: Drop and recreate all tables"""
    if not yes and not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except Exception as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Lifecycle Commands
@cli.group()
def sweep():
    """Run the prediction lifecycle sweeps once"""
    pass


@sweep.command()
@with_appcontext
def upcoming():
    """Create placeholder predictions for matches starting soon"""
    created = _policy().sweep_upcoming()
    if created:
        invalidate_model_cache("Prediction")
    click.echo(f"✅ Created {created} placeholder prediction(s)")


@sweep.command()
@with_appcontext
def missing():
    """Mark predictions left empty after kick-off as not predicted"""
    marked = _policy().sweep_missing()
    if marked:
        invalidate_model_cache("Prediction")
    click.echo(f"✅ Marked {marked} prediction(s) as not predicted")


@cli.group()
def report():
    """Reports"""
    pass


@report.command()
@with_appcontext
def daily():
    """Print the daily statistics report"""
    for key, value in _policy().daily_report().items():
        click.echo(f"{key}: {value}")


# Scoring Commands
@cli.group()
def score():
    """Match result commands"""
    pass


@score.command("set-winner")
@click.argument("match_id")
@click.argument("winner")
@with_appcontext
def set_winner(match_id, winner):
    """Set the winner of a match and score its predictions"""
    try:
        result = ScoringEngine(get_store()).set_match_winner(match_id, winner)
    except TrackerError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    invalidate_model_cache("Prediction")
    click.echo(
        f"✅ {result.match.label}: winner {winner}, "
        f"{result.updated} prediction(s) scored"
    )


# Info Commands
@cli.command()
@click.option("--tournament-id", help="Only count this tournament's matches")
@click.option("--limit", type=int, default=None, help="Number of entries")
@with_appcontext
def leaderboard(tournament_id, limit):
    """Show the accuracy leaderboard"""
    try:
        rows = AggregationEngine(get_store()).compute_leaderboard(
            tournament_id=tournament_id, limit=limit
        )
    except TrackerError as e:
        raise click.ClickException(e.message)

    click.echo("🏆 Leaderboard")
    click.echo("=" * 40)
    if not rows:
        click.echo("No predictors yet")
        return

    for row in rows:
        click.echo(
            f"{row['rank']:>3}. {row['name']:<20} {row['accuracy']:>6}% "
            f"({row['correct']}/{row['correct'] + row['wrong']})"
        )


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🎯 Predictor Tracker Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except Exception as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    store = get_store()
    matches = store.list("matches")
    completed = sum(1 for m in matches if m.is_completed)

    click.echo(f"👥 Predictors: {len(store.list('predictors'))}")
    click.echo(f"🏆 Tournaments: {len(store.list('tournaments'))}")
    click.echo(f"⚽ Matches: {completed}/{len(matches)} completed")
    click.echo(f"📝 Predictions: {len(store.list('predictions'))}")


def main():
    app = create_app()
    with app.app_context():
        cli()


if __name__ == "__main__":
    main()
