"""
Pytest configuration and shared fixtures for the predictor tracker tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from predictor_tracker import create_app, db
from predictor_tracker.models import MatchStatus, PredictionOutcome, ResultStatus
from predictor_tracker.store import EntityStore

# Fixed clock for engine tests
NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    """Application on the testing config with a fresh in-memory database."""
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    db.create_all()

    yield app

    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return EntityStore(db.session)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_predictor(store):
    def factory(name="Alice", parent=None):
        return store.create(
            "predictors",
            name=name,
            parent_predictor_id=parent.id if parent else None,
            created_date=NOW,
        )

    return factory


@pytest.fixture
def make_tournament(store):
    def factory(name="World Cup", start=None, end=None):
        return store.create(
            "tournaments",
            name=name,
            start_date=start or NOW - timedelta(days=30),
            end_date=end or NOW + timedelta(days=30),
        )

    return factory


@pytest.fixture
def make_match(store, make_tournament):
    def factory(
        tournament=None,
        team_a="Red",
        team_b="Blue",
        match_time=None,
        status=MatchStatus.SCHEDULED,
        winner="",
    ):
        tournament = tournament or make_tournament()
        return store.create(
            "matches",
            tournament_id=tournament.id,
            team_a=team_a,
            team_b=team_b,
            match_time=match_time or NOW + timedelta(days=1),
            status=status,
            winner=winner,
        )

    return factory


@pytest.fixture
def make_prediction(store):
    def factory(
        match,
        predictor,
        winner="",
        prediction_time=NOW,
        outcome=PredictionOutcome.UNRESOLVED,
        result_status=ResultStatus.PENDING,
    ):
        return store.create(
            "predictions",
            match_id=match.id,
            predictor_id=predictor.id,
            predicted_winner=winner,
            prediction_time=prediction_time,
            outcome=outcome,
            result_status=result_status,
        )

    return factory
