from flask import Response, request

from predictor_tracker.routes.api import bp
from predictor_tracker.routes.api.helpers import int_arg, listing, ok
from predictor_tracker.services.aggregation_service import AggregationEngine
from predictor_tracker.services.export_service import ExportService
from predictor_tracker.store import get_store
from predictor_tracker.utils.cache_utils import cached_route


@bp.route("/dashboard/stats")
@cached_route(timeout=60, key_prefix="dashboard_stats")
def dashboard_stats():
    return ok(AggregationEngine(get_store()).compute_dashboard_stats())


@bp.route("/dashboard/leaderboard")
@cached_route(timeout=60, key_prefix="leaderboard")
def leaderboard():
    """Predictors ranked by accuracy, optionally scoped to one tournament"""
    rows = AggregationEngine(get_store()).compute_leaderboard(
        tournament_id=request.args.get("tournament_id") or None,
        limit=int_arg("limit"),
    )
    return listing(rows)


@bp.route("/dashboard/tournament-comparison")
@cached_route(timeout=300, key_prefix="tournament_comparison")
def tournament_comparison():
    return listing(AggregationEngine(get_store()).compute_tournament_comparison())


@bp.route("/dashboard/trends")
@cached_route(timeout=300, key_prefix="trends")
def trends():
    days = int_arg("days")
    return listing(AggregationEngine(get_store()).compute_trends(days=days))


@bp.route("/dashboard/predictor-performance/<predictor_id>")
def predictor_performance(predictor_id):
    result = AggregationEngine(get_store()).compute_predictor_performance(
        predictor_id, days=int_arg("days")
    )
    return ok(
        {"predictor": result["predictor"], "performance": result["performance"]},
        count=result["count"],
    )


@bp.route("/dashboard/export")
def export_data():
    filename, content = ExportService(get_store()).export(
        request.args.get("type", ""),
        tournament_id=request.args.get("tournament_id") or None,
    )
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
