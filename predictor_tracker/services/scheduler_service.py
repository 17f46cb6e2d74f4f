"""
Prediction Tracker Background Scheduler Service

Runs the prediction lifecycle sweeps on a timer using APScheduler. Each job
opens an application context, runs its sweep against a fresh entity store and
records the outcome in ``sync_stats``.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from predictor_tracker import db
from predictor_tracker.services.lifecycle_service import LifecyclePolicy
from predictor_tracker.store import EntityStore
from predictor_tracker.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages the background jobs of the lifecycle policy"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.sync_stats = self._empty_stats()

        if app:
            self.init_app(app)

    @staticmethod
    def _empty_stats():
        return {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "predictions_updated": 0,
        }

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        # Register shutdown
        atexit.register(self.shutdown)

        # Start scheduler if enabled
        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add core scheduled jobs"""
        config = self.app.config

        # Seed placeholders for matches about to start (every minute)
        self.scheduler.add_job(
            func=self._sweep_upcoming,
            trigger=IntervalTrigger(seconds=config.get("UPCOMING_SWEEP_SECONDS", 60)),
            id="sweep_upcoming",
            name="Seed Upcoming Match Predictions",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
        )

        # Mark missing predictions (every 30 minutes)
        self.scheduler.add_job(
            func=self._sweep_missing,
            trigger=IntervalTrigger(minutes=config.get("MISSING_SWEEP_MINUTES", 30)),
            id="sweep_missing",
            name="Mark Missing Predictions",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        # Daily report (2 AM UTC)
        self.scheduler.add_job(
            func=self._daily_report,
            trigger=CronTrigger(hour=2, minute=0),
            id="daily_report",
            name="Daily Statistics Report",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _policy(self):
        return LifecyclePolicy.from_config(EntityStore(db.session), self.app.config)

    def _sweep_upcoming(self):
        """Create placeholder predictions for matches starting soon"""
        with self.app.app_context():
            try:
                created = self._policy().sweep_upcoming()
                if created:
                    invalidate_model_cache("Prediction")
                    logger.info(f"Upcoming sweep created {created} placeholders")
                self._update_stats(True, created)
            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.sync_stats["last_error"] = str(e)
                logger.error(f"Error in upcoming sweep: {e}", exc_info=True)

    def _sweep_missing(self):
        """Mark predictions left empty after kick-off"""
        with self.app.app_context():
            try:
                marked = self._policy().sweep_missing()
                if marked:
                    invalidate_model_cache("Prediction")
                    logger.info(f"Missing sweep marked {marked} predictions")
                self._update_stats(True, marked)
            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.sync_stats["last_error"] = str(e)
                logger.error(f"Error in missing sweep: {e}", exc_info=True)

    def _daily_report(self):
        """Log daily statistics"""
        with self.app.app_context():
            try:
                self._policy().daily_report()
                self._update_stats(True)
            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.sync_stats["last_error"] = str(e)
                logger.error(f"Error generating daily report: {e}", exc_info=True)

    def _update_stats(self, success, predictions_updated=0):
        """Update run statistics"""
        self.sync_stats["last_run"] = datetime.now(timezone.utc)
        self.sync_stats["total_runs"] += 1

        if success:
            self.sync_stats["successful_runs"] += 1
            self.sync_stats["predictions_updated"] += predictions_updated
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["failed_runs"] += 1

        # Reset counters periodically
        if self.sync_stats["total_runs"] > 10000:
            last_run = self.sync_stats["last_run"]
            self.sync_stats = self._empty_stats()
            self.sync_stats["last_run"] = last_run

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sync_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()
        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_run(self, job_id):
        """Manually trigger a job"""
        jobs = {
            "sweep_upcoming": self._sweep_upcoming,
            "sweep_missing": self._sweep_missing,
            "daily_report": self._daily_report,
        }
        if job_id not in jobs:
            return False, f"Unknown job: {job_id}"

        try:
            jobs[job_id]()
            return True, f"Manual {job_id} run completed"
        except Exception as e:
            return False, f"Manual run failed: {e}"

    def pause_job(self, job_id):
        """Pause a specific job"""
        try:
            self.scheduler.pause_job(job_id)
            return True, f"Job {job_id} paused"
        except Exception as e:
            return False, f"Failed to pause job: {e}"

    def resume_job(self, job_id):
        """Resume a specific job"""
        try:
            self.scheduler.resume_job(job_id)
            return True, f"Job {job_id} resumed"
        except Exception as e:
            return False, f"Failed to resume job: {e}"


# Global scheduler instance
scheduler_service = SchedulerService()
