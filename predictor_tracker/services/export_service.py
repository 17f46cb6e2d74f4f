"""
CSV export of store contents and the leaderboard
"""

import csv
import io
import logging
import re

from predictor_tracker.errors import NotFound, ValidationError
from predictor_tracker.services.aggregation_service import AggregationEngine

logger = logging.getLogger(__name__)

EXPORT_TYPES = ("predictors", "tournaments", "matches", "predictions", "leaderboard")


class ExportService:
    def __init__(self, store, aggregation=None):
        self.store = store
        self.aggregation = aggregation or AggregationEngine(store)

    def export(self, export_type, tournament_id=None):
        """
        Flatten one record type to CSV.

        Returns:
            tuple: (filename, csv text)
        """
        if export_type not in EXPORT_TYPES:
            raise ValidationError(
                "Invalid export type. Must be one of: " + ", ".join(EXPORT_TYPES)
            )

        tournament = None
        if tournament_id and export_type in ("matches", "predictions"):
            tournament = self.store.get_or_404("tournaments", tournament_id)

        rows = getattr(self, f"_{export_type}_rows")(tournament)
        if not rows:
            raise NotFound("No data found to export")

        filename = f"{export_type}.csv"
        if tournament is not None:
            slug = re.sub(r"\s+", "_", tournament.name)
            filename = f"{export_type}_{slug}.csv"

        logger.info(f"Exporting {len(rows)} {export_type} rows as {filename}")
        return filename, to_csv(rows)

    def _predictors_rows(self, tournament):
        return [p.to_dict() for p in self.store.list("predictors")]

    def _tournaments_rows(self, tournament):
        return [t.to_dict() for t in self.store.list("tournaments")]

    def _matches_rows(self, tournament):
        if tournament is None:
            return [m.to_dict() for m in self.store.list("matches")]
        return [
            dict(m.to_dict(), tournament_name=tournament.name)
            for m in self.store.matches_for_tournament(tournament.id)
        ]

    def _predictions_rows(self, tournament):
        if tournament is None:
            return [p.to_dict() for p in self.store.list("predictions")]

        matches = {m.id: m for m in self.store.matches_for_tournament(tournament.id)}
        names = {p.id: p.name for p in self.store.list("predictors")}

        rows = []
        for prediction in self.store.predictions_for_matches(matches):
            match = matches.get(prediction.match_id)
            row = prediction.to_dict()
            row.update(
                predictor_name=names.get(prediction.predictor_id, "Unknown"),
                team_a=match.team_a if match else "Unknown",
                team_b=match.team_b if match else "Unknown",
                tournament_name=tournament.name,
            )
            rows.append(row)
        return rows

    def _leaderboard_rows(self, tournament):
        return self.aggregation.compute_all_predictor_stats()


def to_csv(rows):
    """
    Render dict rows as CSV with a header taken from the first row.

    Fields containing commas, quotes or newlines are quoted and embedded
    quotes doubled.
    """
    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=list(rows[0].keys()),
        extrasaction="ignore",
        lineterminator="\n",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return output.getvalue()
