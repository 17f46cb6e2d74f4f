import logging

from predictor_tracker.errors import ConflictOfDependency, ValidationError
from predictor_tracker.routes.api import bp
from predictor_tracker.routes.api.helpers import expected_version, get_payload, listing, ok
from predictor_tracker.services.aggregation_service import AggregationEngine
from predictor_tracker.store import get_store
from predictor_tracker.utils.cache_utils import invalidate_model_cache
from predictor_tracker.utils.timezone_utils import utcnow

logger = logging.getLogger(__name__)


def _validate_parent(store, parent_id, predictor_id=None):
    """Parent must exist and must not lead back to the predictor itself"""
    if not parent_id:
        return ""

    parent = store.get_by_id("predictors", parent_id)
    if parent is None:
        raise ValidationError("Parent predictor not found")

    if predictor_id is None:
        return parent.id
    if parent.id == predictor_id:
        raise ValidationError("Predictor cannot be its own parent")

    # Walk up the ancestry of the new parent
    seen = {parent.id}
    ancestor_id = parent.parent_predictor_id
    while ancestor_id:
        if ancestor_id == predictor_id:
            raise ValidationError("Predictor cannot be a descendant of itself")
        if ancestor_id in seen:
            break
        seen.add(ancestor_id)
        ancestor = store.get_by_id("predictors", ancestor_id)
        ancestor_id = ancestor.parent_predictor_id if ancestor else None

    return parent.id


@bp.route("/predictors")
def list_predictors():
    """Get all predictors"""
    predictors = get_store().list("predictors")
    return listing([p.to_dict() for p in predictors])


@bp.route("/predictors/stats")
def predictors_with_stats():
    """Get all predictors with their statistics"""
    rows = AggregationEngine(get_store()).compute_all_predictor_stats()
    return listing(rows)


@bp.route("/predictors/<predictor_id>")
def get_predictor(predictor_id):
    predictor = get_store().get_or_404("predictors", predictor_id)
    return ok(predictor.to_dict())


@bp.route("/predictors/<predictor_id>/stats")
def predictor_stats(predictor_id):
    return ok(AggregationEngine(get_store()).compute_predictor_stats(predictor_id))


@bp.route("/predictors", methods=["POST"])
def create_predictor():
    data = get_payload()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Predictor name is required")

    store = get_store()
    parent_id = _validate_parent(store, data.get("parent_predictor_id"))

    predictor = store.create(
        "predictors",
        name=name,
        parent_predictor_id=parent_id or None,
        created_date=utcnow(),
    )
    invalidate_model_cache("Predictor")
    logger.info(f"Predictor created: {predictor.name} ({predictor.id})")

    return ok(predictor.to_dict(), message="Predictor created successfully"), 201


@bp.route("/predictors/<predictor_id>", methods=["PUT"])
def update_predictor(predictor_id):
    data = get_payload()
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Predictor name is required")

    store = get_store()
    store.get_or_404("predictors", predictor_id)
    parent_id = _validate_parent(
        store, data.get("parent_predictor_id"), predictor_id=predictor_id
    )

    predictor = store.update(
        "predictors",
        predictor_id,
        expected_version=expected_version(data),
        name=name,
        parent_predictor_id=parent_id or None,
    )
    invalidate_model_cache("Predictor")

    return ok(predictor.to_dict(), message="Predictor updated successfully")


@bp.route("/predictors/<predictor_id>", methods=["DELETE"])
def delete_predictor(predictor_id):
    store = get_store()
    store.get_or_404("predictors", predictor_id)

    if store.children_of(predictor_id):
        raise ConflictOfDependency(
            "Cannot delete predictor with children. "
            "Please reassign or delete children first."
        )
    if store.predictions_for_predictor(predictor_id):
        raise ConflictOfDependency("Cannot delete predictor with existing predictions")

    store.delete("predictors", predictor_id)
    invalidate_model_cache("Predictor")

    return ok(message="Predictor deleted successfully")
