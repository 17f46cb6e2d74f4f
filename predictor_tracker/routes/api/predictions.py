import logging

from predictor_tracker.errors import ValidationError
from predictor_tracker.models import PredictionOutcome, ResultStatus
from predictor_tracker.routes.api import bp
from predictor_tracker.routes.api.helpers import expected_version, get_payload, listing, ok
from predictor_tracker.services.aggregation_service import AggregationEngine
from predictor_tracker.store import get_store
from predictor_tracker.utils.cache_utils import invalidate_model_cache
from predictor_tracker.utils.timezone_utils import utcnow

logger = logging.getLogger(__name__)


def _predictor_summary(predictor):
    return {"id": predictor.id, "name": predictor.name} if predictor else None


def _existing_reference(store, entity_type, entity_id, label):
    record = store.get_by_id(entity_type, entity_id)
    if record is None:
        raise ValidationError(f"{label} not found")
    return record


def _check_pick(match, predicted_winner):
    if not match.has_team(predicted_winner):
        raise ValidationError(
            f"Predicted winner must be either {match.team_a} or {match.team_b}"
        )


@bp.route("/predictions")
def list_predictions():
    """All predictions with match and predictor summaries"""
    store = get_store()
    matches = {m.id: m for m in store.list("matches")}
    predictors = {p.id: p for p in store.list("predictors")}

    rows = []
    for prediction in store.list("predictions"):
        match = matches.get(prediction.match_id)
        rows.append(
            dict(
                prediction.to_dict(),
                match=match.summary() if match else None,
                predictor=_predictor_summary(predictors.get(prediction.predictor_id)),
            )
        )
    return listing(rows)


@bp.route("/predictions/stats")
def prediction_stats():
    return ok(AggregationEngine(get_store()).compute_prediction_stats())


@bp.route("/predictions/match/<match_id>")
def predictions_by_match(match_id):
    store = get_store()
    match = store.get_or_404("matches", match_id)
    predictors = {p.id: p for p in store.list("predictors")}

    rows = [
        dict(
            p.to_dict(),
            predictor=_predictor_summary(predictors.get(p.predictor_id)),
        )
        for p in store.predictions_for_match(match.id)
    ]
    return ok({"match": match.to_dict(), "predictions": rows}, count=len(rows))


@bp.route("/predictions/predictor/<predictor_id>")
def predictions_by_predictor(predictor_id):
    store = get_store()
    predictor = store.get_or_404("predictors", predictor_id)
    matches = {m.id: m for m in store.list("matches")}

    rows = []
    for prediction in store.predictions_for_predictor(predictor.id):
        match = matches.get(prediction.match_id)
        rows.append(dict(prediction.to_dict(), match=match.summary() if match else None))
    return ok({"predictor": predictor.to_dict(), "predictions": rows}, count=len(rows))


@bp.route("/predictions/<prediction_id>")
def get_prediction(prediction_id):
    store = get_store()
    prediction = store.get_or_404("predictions", prediction_id)
    match = store.get_by_id("matches", prediction.match_id)
    predictor = store.get_by_id("predictors", prediction.predictor_id)
    return ok(
        dict(
            prediction.to_dict(),
            match=match.to_dict() if match else None,
            predictor=predictor.to_dict() if predictor else None,
        )
    )


@bp.route("/predictions", methods=["POST"])
def create_prediction():
    """
    Record a pick.

    When the upcoming sweep already seeded an empty placeholder for this
    predictor and match, the placeholder is filled in instead of creating a
    second row.
    """
    data = get_payload()
    if not data.get("match_id"):
        raise ValidationError("Match ID is required")
    if not data.get("predictor_id"):
        raise ValidationError("Predictor ID is required")
    predicted_winner = (data.get("predicted_winner") or "").strip()
    if not predicted_winner:
        raise ValidationError("Predicted winner is required")

    store = get_store()
    match = _existing_reference(store, "matches", data["match_id"], "Match")
    predictor = _existing_reference(store, "predictors", data["predictor_id"], "Predictor")

    if match.is_completed:
        raise ValidationError("Cannot predict on completed match")
    _check_pick(match, predicted_winner)

    existing = next(
        (
            p
            for p in store.predictions_for_match(match.id)
            if p.predictor_id == predictor.id
        ),
        None,
    )
    if existing is not None and existing.has_pick:
        raise ValidationError("Prediction already exists for this match and predictor")

    fields = {
        "predicted_winner": predicted_winner,
        "prediction_time": utcnow(),
        "outcome": PredictionOutcome.UNRESOLVED,
        "result_status": ResultStatus.PENDING,
    }
    if existing is not None:
        prediction = store.update("predictions", existing.id, **fields)
        logger.info(f"Filled placeholder prediction {prediction.id} for {predictor.name}")
    else:
        prediction = store.create(
            "predictions", match_id=match.id, predictor_id=predictor.id, **fields
        )
        logger.info(f"Prediction created: {predictor.name} picks {predicted_winner} in {match.label}")
    invalidate_model_cache("Prediction")

    return ok(prediction.to_dict(), message="Prediction created successfully"), 201


@bp.route("/predictions/<prediction_id>", methods=["PUT"])
def update_prediction(prediction_id):
    data = get_payload()
    predicted_winner = (data.get("predicted_winner") or "").strip()
    if not predicted_winner:
        raise ValidationError("Predicted winner is required")

    store = get_store()
    prediction = store.get_or_404("predictions", prediction_id)
    match = _existing_reference(store, "matches", prediction.match_id, "Match")

    if match.is_completed:
        raise ValidationError("Cannot update prediction on completed match")
    _check_pick(match, predicted_winner)

    prediction = store.update(
        "predictions",
        prediction_id,
        expected_version=expected_version(data),
        predicted_winner=predicted_winner,
        prediction_time=utcnow(),
        outcome=PredictionOutcome.UNRESOLVED,
        result_status=ResultStatus.PENDING,
    )
    invalidate_model_cache("Prediction")

    return ok(prediction.to_dict(), message="Prediction updated successfully")


@bp.route("/predictions/<prediction_id>", methods=["DELETE"])
def delete_prediction(prediction_id):
    store = get_store()
    prediction = store.get_or_404("predictions", prediction_id)

    match = store.get_by_id("matches", prediction.match_id)
    if match is not None and match.is_completed:
        raise ValidationError("Cannot delete prediction on completed match")

    store.delete("predictions", prediction_id)
    invalidate_model_cache("Prediction")

    return ok(message="Prediction deleted successfully")
