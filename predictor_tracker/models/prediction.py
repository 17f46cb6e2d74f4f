import uuid
from datetime import datetime, timezone

from predictor_tracker import db
from predictor_tracker.models.enums import PredictionOutcome, ResultStatus, enum_values
from predictor_tracker.utils.timezone_utils import isoformat


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    match_id = db.Column(db.String(36), db.ForeignKey("matches.id"), nullable=False)
    predictor_id = db.Column(
        db.String(36), db.ForeignKey("predictors.id"), nullable=False
    )

    # Empty means the predictor has not picked yet
    predicted_winner = db.Column(db.String(100), default="")
    prediction_time = db.Column(db.DateTime(timezone=True), nullable=True)

    # Results (calculated once the match winner is known)
    outcome = db.Column(
        db.Enum(
            PredictionOutcome,
            name="prediction_outcome",
            native_enum=False,
            values_callable=enum_values,
            length=20,
        ),
        default=PredictionOutcome.UNRESOLVED,
        nullable=False,
    )
    result_status = db.Column(
        db.Enum(
            ResultStatus,
            name="result_status",
            native_enum=False,
            values_callable=enum_values,
            length=20,
        ),
        default=ResultStatus.PENDING,
        nullable=False,
    )

    # Store bookkeeping
    version_id = db.Column(db.Integer, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        db.Index("idx_prediction_match", "match_id"),
        db.Index("idx_prediction_predictor", "predictor_id"),
    )

    def __repr__(self):
        return f"<Prediction match_id={self.match_id} predictor_id={self.predictor_id} pick={self.predicted_winner or '-'}>"

    @property
    def has_pick(self):
        return bool(self.predicted_winner)

    @property
    def is_correct(self):
        return self.outcome == PredictionOutcome.CORRECT

    @property
    def is_wrong(self):
        return self.outcome == PredictionOutcome.INCORRECT

    @property
    def is_pending(self):
        """Picked, but the match result is not known yet"""
        return self.has_pick and self.outcome == PredictionOutcome.UNRESOLVED

    def to_dict(self):
        return {
            "id": self.id,
            "match_id": self.match_id,
            "predictor_id": self.predictor_id,
            "predicted_winner": self.predicted_winner or "",
            "prediction_time": isoformat(self.prediction_time),
            "outcome": self.outcome.value,
            "is_correct": self.outcome.legacy_value,
            "result_status": self.result_status.label,
            "version": self.version_id,
        }
