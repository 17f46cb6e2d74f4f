"""
Error taxonomy for the prediction tracker

Every domain failure raised by the store, the engines or the API layer is a
TrackerError. The Flask error handlers in predictor_tracker/__init__.py turn
them into JSON responses using ``status_code``.
"""


class TrackerError(Exception):
    """Base class for client-visible failures"""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"success": False, "error": self.message}


class NotFound(TrackerError):
    """A referenced id does not exist (or was deleted)"""

    status_code = 404


class ValidationError(TrackerError):
    """Missing field, malformed value or a violated business rule"""

    status_code = 400


class InvalidWinner(ValidationError):
    """Winner is not one of the two teams of the match"""

    def __init__(self, match, winner):
        super().__init__(
            f"Winner must be either {match.team_a} or {match.team_b}"
        )
        self.match_id = match.id
        self.winner = winner


class ConflictOfDependency(TrackerError):
    """Entity is still referenced by others and cannot be deleted"""

    status_code = 400


class StaleEntity(TrackerError):
    """Entity changed since it was read (optimistic concurrency check failed)"""

    status_code = 409

    def __init__(self, entity_type, entity_id, message=None):
        super().__init__(
            message
            or f"{entity_type} {entity_id} was modified concurrently, reload and retry"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
