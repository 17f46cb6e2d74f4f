import logging

from predictor_tracker.errors import TrackerError, ValidationError
from predictor_tracker.routes.api import bp
from predictor_tracker.routes.api.helpers import get_payload, ok
from predictor_tracker.services.scheduler_service import scheduler_service
from predictor_tracker.utils.cache_utils import get_cache_stats

logger = logging.getLogger(__name__)

JOB_ACTIONS = ("force", "pause", "resume")
JOB_IDS = ("sweep_upcoming", "sweep_missing", "daily_report")


@bp.route("/admin/scheduler")
def scheduler_status():
    status = scheduler_service.get_status()
    status["cache"] = get_cache_stats()
    return ok(status)


@bp.route("/admin/scheduler", methods=["POST"])
def scheduler_action():
    """Start, stop or drive individual scheduler jobs"""
    data = get_payload()
    action = data.get("action")

    if action not in ("start", "stop") + JOB_ACTIONS:
        raise ValidationError("Unknown action")
    if scheduler_service.scheduler is None:
        raise ValidationError("Scheduler is not initialised")

    if action == "start":
        scheduler_service.start()
        return ok(scheduler_service.get_status(), message="Scheduler started successfully")

    if action == "stop":
        scheduler_service.stop()
        return ok(scheduler_service.get_status(), message="Scheduler stopped successfully")

    job_id = data.get("job_id")
    if not job_id:
        raise ValidationError("Job ID required")
    if job_id not in JOB_IDS:
        raise ValidationError(f"Unknown job: {job_id}")

    if action == "force":
        success, message = scheduler_service.force_run(job_id)
    elif action == "pause":
        success, message = scheduler_service.pause_job(job_id)
    else:
        success, message = scheduler_service.resume_job(job_id)

    if not success:
        logger.warning(f"Scheduler action {action} on {job_id} failed: {message}")
        raise TrackerError(message, status_code=500)
    return ok(message=message)
