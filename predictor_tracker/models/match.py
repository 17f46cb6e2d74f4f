import uuid
from datetime import datetime, timezone

from predictor_tracker import db
from predictor_tracker.models.enums import MatchStatus, enum_values
from predictor_tracker.utils.timezone_utils import as_utc, isoformat


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tournament_id = db.Column(
        db.String(36), db.ForeignKey("tournaments.id"), nullable=False
    )

    # Teams
    team_a = db.Column(db.String(100), nullable=False)
    team_b = db.Column(db.String(100), nullable=False)

    match_time = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(
        db.Enum(
            MatchStatus,
            name="match_status",
            native_enum=False,
            values_callable=enum_values,
            length=20,
        ),
        default=MatchStatus.SCHEDULED,
        nullable=False,
    )

    # Empty until the result is known; then team_a or team_b
    winner = db.Column(db.String(100), default="")

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
        db.Index("idx_match_tournament", "tournament_id"),
        db.Index("idx_match_time", "match_time"),
    )

    def __repr__(self):
        return f"<Match {self.team_a} vs {self.team_b}>"

    @property
    def is_completed(self):
        return self.status == MatchStatus.COMPLETED

    @property
    def label(self):
        return f"{self.team_a} vs {self.team_b}"

    def has_team(self, team):
        return bool(team) and team in (self.team_a, self.team_b)

    def starts_within(self, now, window):
        """Match time falls in (now, now + window]"""
        match_time = as_utc(self.match_time)
        return now < match_time <= now + window

    def started_at_least(self, now, elapsed):
        return now - as_utc(self.match_time) >= elapsed

    def summary(self):
        """Short form embedded in prediction payloads"""
        return {
            "id": self.id,
            "team_a": self.team_a,
            "team_b": self.team_b,
            "match_time": isoformat(self.match_time),
            "status": self.status.value,
            "winner": self.winner or "",
        }

    def to_dict(self):
        data = self.summary()
        data["tournament_id"] = self.tournament_id
        data["version"] = self.version_id
        return data
