import logging

from flask import current_app

from predictor_tracker.errors import ConflictOfDependency, ValidationError
from predictor_tracker.models import MatchStatus
from predictor_tracker.routes.api import bp
from predictor_tracker.routes.api.helpers import (
    expected_version,
    get_payload,
    listing,
    ok,
    parse_time,
)
from predictor_tracker.services.lifecycle_service import LifecyclePolicy
from predictor_tracker.store import get_store
from predictor_tracker.utils.cache_utils import invalidate_model_cache
from predictor_tracker.utils.scoring import ScoringEngine
from predictor_tracker.utils.timezone_utils import utcnow

logger = logging.getLogger(__name__)


def _with_tournament_names(store, matches):
    names = {t.id: t.name for t in store.list("tournaments")}
    return [
        dict(m.to_dict(), tournament_name=names.get(m.tournament_id, "Unknown Tournament"))
        for m in matches
    ]


def _tournament_for(store, tournament_id):
    # A bad reference in a body is a client error, not a missing route
    tournament = store.get_by_id("tournaments", tournament_id)
    if tournament is None:
        raise ValidationError("Tournament not found")
    return tournament


def _check_match_time(tournament, match_time):
    if not tournament.contains(match_time):
        raise ValidationError("Match time must be within tournament period")
    if match_time <= utcnow():
        raise ValidationError("Match time must be in the future")


@bp.route("/matches")
def list_matches():
    store = get_store()
    return listing(_with_tournament_names(store, store.list("matches")))


@bp.route("/matches/upcoming")
def upcoming_matches():
    """Open matches starting within the placeholder window"""
    store = get_store()
    policy = LifecyclePolicy.from_config(store, current_app.config)
    return listing(_with_tournament_names(store, policy.upcoming_matches()))


@bp.route("/matches/completed")
def completed_matches():
    store = get_store()
    matches = [m for m in store.list("matches") if m.is_completed]
    return listing(_with_tournament_names(store, matches))


@bp.route("/matches/tournament/<tournament_id>")
def matches_by_tournament(tournament_id):
    store = get_store()
    tournament = store.get_or_404("tournaments", tournament_id)
    matches = store.matches_for_tournament(tournament.id)
    return ok(
        {"tournament": tournament.to_dict(), "matches": [m.to_dict() for m in matches]},
        count=len(matches),
    )


@bp.route("/matches/<match_id>")
def get_match(match_id):
    store = get_store()
    match = store.get_or_404("matches", match_id)
    tournament = store.get_by_id("tournaments", match.tournament_id)
    names = {p.id: p.name for p in store.list("predictors")}

    predictions = [
        dict(
            p.to_dict(),
            predictor_name=names.get(p.predictor_id, "Unknown Predictor"),
        )
        for p in store.predictions_for_match(match.id)
    ]
    return ok(
        dict(
            match.to_dict(),
            tournament=tournament.to_dict() if tournament else None,
            predictions=predictions,
        )
    )


@bp.route("/matches", methods=["POST"])
def create_match():
    data = get_payload()
    if not data.get("tournament_id"):
        raise ValidationError("Tournament ID is required")
    team_a = (data.get("team_a") or "").strip()
    team_b = (data.get("team_b") or "").strip()
    if not team_a or not team_b:
        raise ValidationError("Both teams are required")
    if not data.get("match_time"):
        raise ValidationError("Match time is required")

    store = get_store()
    tournament = _tournament_for(store, data["tournament_id"])
    match_time = parse_time(data["match_time"], "Invalid match time format")
    _check_match_time(tournament, match_time)

    match = store.create(
        "matches",
        tournament_id=tournament.id,
        team_a=team_a,
        team_b=team_b,
        match_time=match_time,
        status=MatchStatus.SCHEDULED,
        winner="",
    )
    invalidate_model_cache("Match")
    logger.info(f"Match created: {match.label} at {match.match_time}")

    return ok(match.to_dict(), message="Match created successfully"), 201


@bp.route("/matches/<match_id>", methods=["PUT"])
def update_match(match_id):
    data = get_payload()
    store = get_store()
    match = store.get_or_404("matches", match_id)

    fields = {}
    if data.get("tournament_id"):
        fields["tournament_id"] = _tournament_for(store, data["tournament_id"]).id

    for team in ("team_a", "team_b"):
        value = (data.get(team) or "").strip()
        if value:
            fields[team] = value

    if match.winner and ("team_a" in fields or "team_b" in fields):
        teams = (fields.get("team_a", match.team_a), fields.get("team_b", match.team_b))
        if match.winner not in teams:
            raise ValidationError(
                f"Cannot rename teams: winner {match.winner} must remain one of the teams"
            )

    if data.get("match_time"):
        match_time = parse_time(data["match_time"], "Invalid match time format")
        tournament = _tournament_for(
            store, fields.get("tournament_id", match.tournament_id)
        )
        _check_match_time(tournament, match_time)
        fields["match_time"] = match_time
    elif "tournament_id" in fields:
        tournament = store.get_by_id("tournaments", fields["tournament_id"])
        if not tournament.contains(match.match_time):
            raise ValidationError("Match time must be within tournament period")

    if data.get("status"):
        if data["status"] not in MatchStatus.values():
            raise ValidationError(
                "Invalid status. Must be one of: " + ", ".join(MatchStatus.values())
            )
        fields["status"] = MatchStatus(data["status"])

    match = store.update(
        "matches", match_id, expected_version=expected_version(data), **fields
    )
    invalidate_model_cache("Match")

    return ok(match.to_dict(), message="Match updated successfully")


@bp.route("/matches/<match_id>/winner", methods=["PUT"])
def set_match_winner(match_id):
    data = get_payload()
    winner = (data.get("winner") or "").strip()
    if not winner:
        raise ValidationError("Winner is required")

    result = ScoringEngine(get_store()).set_match_winner(match_id, winner)
    invalidate_model_cache("Prediction")

    return ok(
        dict(result.match.to_dict(), predictions_updated=result.updated),
        message="Match winner set and predictions updated successfully",
    )


@bp.route("/matches/<match_id>/result", methods=["PUT"])
def correct_match_result(match_id):
    data = get_payload()
    winner = (data.get("winner") or "").strip()
    if not winner:
        raise ValidationError("Winner is required")

    result = ScoringEngine(get_store()).correct_match_result(match_id, winner)
    invalidate_model_cache("Prediction")

    return ok(
        dict(
            result.match.to_dict(),
            previous_winner=result.previous_winner,
            predictions_updated=result.updated,
        ),
        message="Match result corrected and predictions re-scored",
    )


@bp.route("/matches/<match_id>", methods=["DELETE"])
def delete_match(match_id):
    store = get_store()
    store.get_or_404("matches", match_id)

    if store.predictions_for_match(match_id):
        raise ConflictOfDependency("Cannot delete match with existing predictions")

    store.delete("matches", match_id)
    invalidate_model_cache("Match")

    return ok(message="Match deleted successfully")
