import uuid
from datetime import datetime, timezone

from predictor_tracker import db
from predictor_tracker.utils.timezone_utils import isoformat


class Predictor(db.Model):
    __tablename__ = "predictors"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(120), nullable=False)

    # Self reference; roots have no parent
    parent_predictor_id = db.Column(
        db.String(36), db.ForeignKey("predictors.id"), nullable=True, index=True
    )

    created_date = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
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

    def __repr__(self):
        return f"<Predictor {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "parent_predictor_id": self.parent_predictor_id or "",
            "created_date": isoformat(self.created_date),
            "version": self.version_id,
        }
