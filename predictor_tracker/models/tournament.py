import uuid
from datetime import datetime, timezone

from predictor_tracker import db
from predictor_tracker.utils.timezone_utils import as_utc, isoformat


class Tournament(db.Model):
    __tablename__ = "tournaments"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)

    # Tournament window, start must precede end
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)

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
        return f"<Tournament {self.name}>"

    def contains(self, moment):
        """Check if a moment falls inside [start_date, end_date]"""
        return as_utc(self.start_date) <= as_utc(moment) <= as_utc(self.end_date)

    def is_active(self, now, lookahead):
        """Running now, or starting within ``lookahead``"""
        start = as_utc(self.start_date)
        end = as_utc(self.end_date)
        is_running = start <= now <= end
        is_starting_soon = now < start <= now + lookahead
        return is_running or is_starting_soon

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "version": self.version_id,
        }
