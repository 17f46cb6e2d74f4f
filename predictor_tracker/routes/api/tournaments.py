import logging
from datetime import timedelta

from predictor_tracker.errors import ConflictOfDependency, ValidationError
from predictor_tracker.routes.api import bp
from predictor_tracker.routes.api.helpers import (
    expected_version,
    get_payload,
    listing,
    ok,
    parse_time,
)
from predictor_tracker.services.aggregation_service import AggregationEngine
from predictor_tracker.store import get_store
from predictor_tracker.utils.cache_utils import invalidate_model_cache
from predictor_tracker.utils.timezone_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

ACTIVE_LOOKAHEAD = timedelta(days=7)


@bp.route("/tournaments")
def list_tournaments():
    tournaments = get_store().list("tournaments")
    return listing([t.to_dict() for t in tournaments])


@bp.route("/tournaments/active")
def active_tournaments():
    """Tournaments running now or starting within a week"""
    now = utcnow()
    tournaments = [
        t for t in get_store().list("tournaments") if t.is_active(now, ACTIVE_LOOKAHEAD)
    ]
    return listing([t.to_dict() for t in tournaments])


@bp.route("/tournaments/<tournament_id>")
def get_tournament(tournament_id):
    store = get_store()
    tournament = store.get_or_404("tournaments", tournament_id)
    matches = store.matches_for_tournament(tournament.id)
    return ok(dict(tournament.to_dict(), matches=[m.to_dict() for m in matches]))


@bp.route("/tournaments/<tournament_id>/stats")
def tournament_stats(tournament_id):
    return ok(AggregationEngine(get_store()).compute_tournament_stats(tournament_id))


@bp.route("/tournaments", methods=["POST"])
def create_tournament():
    data = get_payload()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Tournament name is required")
    if not data.get("start_date"):
        raise ValidationError("Tournament start date is required")
    if not data.get("end_date"):
        raise ValidationError("Tournament end date is required")

    start = parse_time(data["start_date"], "Invalid date format")
    end = parse_time(data["end_date"], "Invalid date format")

    if start >= end:
        raise ValidationError("Start date must be before end date")
    if start < utcnow():
        raise ValidationError("Start date cannot be in the past")

    tournament = get_store().create(
        "tournaments", name=name, start_date=start, end_date=end
    )
    invalidate_model_cache("Tournament")
    logger.info(f"Tournament created: {tournament.name} ({tournament.id})")

    return ok(tournament.to_dict(), message="Tournament created successfully"), 201


@bp.route("/tournaments/<tournament_id>", methods=["PUT"])
def update_tournament(tournament_id):
    data = get_payload()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Tournament name is required")

    store = get_store()
    tournament = store.get_or_404("tournaments", tournament_id)

    fields = {"name": name}
    if data.get("start_date"):
        fields["start_date"] = parse_time(data["start_date"], "Invalid start date format")
    if data.get("end_date"):
        fields["end_date"] = parse_time(data["end_date"], "Invalid end date format")

    new_start = fields.get("start_date", as_utc(tournament.start_date))
    new_end = fields.get("end_date", as_utc(tournament.end_date))
    if new_start >= new_end:
        raise ValidationError("Start date must be before end date")

    # Existing matches must stay inside the new window
    if "start_date" in fields or "end_date" in fields:
        for match in store.matches_for_tournament(tournament.id):
            match_time = as_utc(match.match_time)
            if match_time < new_start or match_time > new_end:
                raise ValidationError(
                    f"Cannot update tournament dates: match {match.label} "
                    "is scheduled outside the new tournament period"
                )

    tournament = store.update(
        "tournaments",
        tournament_id,
        expected_version=expected_version(data),
        **fields,
    )
    invalidate_model_cache("Tournament")

    return ok(tournament.to_dict(), message="Tournament updated successfully")


@bp.route("/tournaments/<tournament_id>", methods=["DELETE"])
def delete_tournament(tournament_id):
    store = get_store()
    store.get_or_404("tournaments", tournament_id)

    if store.matches_for_tournament(tournament_id):
        raise ConflictOfDependency(
            "Cannot delete tournament with existing matches. "
            "Please delete matches first."
        )

    store.delete("tournaments", tournament_id)
    invalidate_model_cache("Tournament")

    return ok(message="Tournament deleted successfully")
