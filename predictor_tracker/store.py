"""
Entity store for predictors, tournaments, matches and predictions

A thin key-value style layer over the SQLAlchemy session. Every record type is
addressed by name ("predictors", "tournaments", "matches", "predictions").
Deletes are tombstones (``is_deleted``), and every UPDATE is a compare-and-swap
on the record's ``version_id`` so concurrent writers get a StaleEntity error
instead of silently losing an update.
"""

import logging
import uuid

from sqlalchemy.orm.exc import StaleDataError

from predictor_tracker.errors import NotFound, StaleEntity
from predictor_tracker.models import Match, Prediction, Predictor, Tournament

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    "predictors": Predictor,
    "tournaments": Tournament,
    "matches": Match,
    "predictions": Prediction,
}

ENTITY_LABELS = {
    "predictors": "Predictor",
    "tournaments": "Tournament",
    "matches": "Match",
    "predictions": "Prediction",
}

# Columns callers may never write through create/update
PROTECTED_FIELDS = {"id", "version_id", "is_deleted", "created_at", "updated_at"}


class EntityStore:
    def __init__(self, session):
        self.session = session

    @staticmethod
    def model_for(entity_type):
        try:
            return ENTITY_MODELS[entity_type]
        except KeyError:
            raise ValueError(f"Unknown entity type: {entity_type}") from None

    def _query(self, entity_type):
        model = self.model_for(entity_type)
        return self.session.query(model).filter(model.is_deleted.is_(False))

    def list(self, entity_type):
        model = self.model_for(entity_type)
        return self._query(entity_type).order_by(model.created_at, model.id).all()

    def get_by_id(self, entity_type, entity_id):
        if not entity_id:
            return None
        return self._query(entity_type).filter_by(id=entity_id).first()

    def get_or_404(self, entity_type, entity_id):
        record = self.get_by_id(entity_type, entity_id)
        if record is None:
            raise NotFound(f"{ENTITY_LABELS[entity_type]} not found")
        return record

    def create(self, entity_type, commit=True, **fields):
        model = self.model_for(entity_type)
        self._check_fields(model, fields)

        record = model(id=str(uuid.uuid4()), **fields)
        self.session.add(record)
        if commit:
            self.commit()
        else:
            self.session.flush()

        logger.debug(f"Created {entity_type} {record.id}")
        return record

    def update(self, entity_type, entity_id, expected_version=None, commit=True, **fields):
        model = self.model_for(entity_type)
        self._check_fields(model, fields)

        record = self.get_or_404(entity_type, entity_id)
        if expected_version is not None and int(expected_version) != record.version_id:
            raise StaleEntity(ENTITY_LABELS[entity_type], entity_id)

        for key, value in fields.items():
            setattr(record, key, value)

        if commit:
            self.commit(entity_type, entity_id)
        else:
            self._flush(entity_type, entity_id)
        return record

    def delete(self, entity_type, entity_id, commit=True):
        record = self.get_or_404(entity_type, entity_id)
        record.is_deleted = True

        if commit:
            self.commit(entity_type, entity_id)
        else:
            self._flush(entity_type, entity_id)

        logger.info(f"Deleted {entity_type} {entity_id}")
        return {"success": True, "message": f"Item {entity_id} deleted from {entity_type}"}

    def commit(self, entity_type="record", entity_id=None):
        try:
            self.session.commit()
        except StaleDataError as e:
            self.session.rollback()
            logger.warning(f"Concurrent write detected on {entity_type} {entity_id}: {e}")
            raise StaleEntity(ENTITY_LABELS.get(entity_type, entity_type), entity_id) from e

    def rollback(self):
        self.session.rollback()

    def _flush(self, entity_type, entity_id):
        try:
            self.session.flush()
        except StaleDataError as e:
            self.session.rollback()
            raise StaleEntity(ENTITY_LABELS.get(entity_type, entity_type), entity_id) from e

    @staticmethod
    def _check_fields(model, fields):
        for key in fields:
            if key in PROTECTED_FIELDS or not hasattr(model, key):
                raise ValueError(f"{model.__name__} has no writable field {key!r}")

    # Filtered scans

    def matches_for_tournament(self, tournament_id):
        return (
            self._query("matches")
            .filter(Match.tournament_id == tournament_id)
            .order_by(Match.created_at, Match.id)
            .all()
        )

    def predictions_for_match(self, match_id):
        return (
            self._query("predictions")
            .filter(Prediction.match_id == match_id)
            .order_by(Prediction.created_at, Prediction.id)
            .all()
        )

    def predictions_for_predictor(self, predictor_id):
        return (
            self._query("predictions")
            .filter(Prediction.predictor_id == predictor_id)
            .order_by(Prediction.created_at, Prediction.id)
            .all()
        )

    def predictions_for_matches(self, match_ids):
        match_ids = list(match_ids)
        if not match_ids:
            return []
        return (
            self._query("predictions")
            .filter(Prediction.match_id.in_(match_ids))
            .order_by(Prediction.created_at, Prediction.id)
            .all()
        )

    def children_of(self, predictor_id):
        return (
            self._query("predictors")
            .filter(Predictor.parent_predictor_id == predictor_id)
            .all()
        )


def get_store():
    """Store bound to the Flask-SQLAlchemy scoped session"""
    from predictor_tracker import db

    return EntityStore(db.session)


