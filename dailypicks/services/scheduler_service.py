"""
Daily Slate Scheduler Service

Runs the daily slate lifecycle in the background with APScheduler:
build the slate each morning, poll scores through the day, and sweep
any slate that is complete but not yet finalized at night.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from dailypicks import db
from dailypicks.models import Slate
from dailypicks.providers import get_schedule_provider, get_score_provider
from dailypicks.services.finalization import finalize_slate
from dailypicks.services.score_normalizer import GameScoreNormalizer
from dailypicks.services.slate_builder import SlateBuilder
from dailypicks.services.slate_state import SlateStateMachine

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages background jobs for the daily slate lifecycle"""

    JOB_TYPES = ("build_slate", "check_scores", "finalize")

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.schedule_provider = None
        self.score_provider = None
        self.is_running = False
        self.sync_stats = {
            "last_sync": None,
            "total_syncs": 0,
            "successful_syncs": 0,
            "failed_syncs": 0,
            "last_error": None,
            "games_updated": 0,
            "slates_finalized": 0,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(
            daemon=True, timezone=app.config.get("TIMEZONE", "America/New_York")
        )

        # Providers keep their HTTP session across runs
        with app.app_context():
            self.schedule_provider = get_schedule_provider(app.config)
            self.score_provider = get_score_provider(app.config)

        atexit.register(self.shutdown)

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
        """Register the three lifecycle jobs; cron times are in TIMEZONE"""
        config = self.app.config
        triggers = {
            "build_slate": CronTrigger(hour=config.get("SLATE_BUILD_HOUR", 8), minute=0),
            "check_scores": IntervalTrigger(minutes=config.get("SCORE_POLL_MINUTES", 30)),
            # Sweep for complete slates the poll did not finalize
            "finalize": CronTrigger(hour=config.get("FINALIZE_HOUR", 23), minute=30),
        }
        names = {
            "build_slate": "Build Daily Slate",
            "check_scores": "Check Scores",
            "finalize": "Finalize Completed Slates",
        }

        for job_id in self.JOB_TYPES:
            self.scheduler.add_job(
                func=self._run_job,
                args=[job_id],
                trigger=triggers[job_id],
                id=job_id,
                name=names[job_id],
                max_instances=1,
                coalesce=True,
                misfire_grace_time=300 if job_id == "check_scores" else 3600,
            )

        logger.info(f"Scheduled jobs: {', '.join(self.JOB_TYPES)}")

    def _run_job(self, job_id):
        """Run one job in an app context; the outcome goes to sync_stats and is returned"""
        job = {
            "build_slate": self._build_slate,
            "check_scores": self._check_scores,
            "finalize": self._finalize,
        }[job_id]

        with self.app.app_context():
            try:
                counts = job() or {}
                self._update_stats(True, **counts)
                return True
            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.sync_stats["last_error"] = f"{job_id}: {e}"
                logger.error(f"Job {job_id} failed: {e}", exc_info=True)
                return False

    def _build_slate(self):
        builder = SlateBuilder.from_config(self.app.config, provider=self.schedule_provider)
        result = builder.build_today()
        logger.info(f"Slate build: {result['message']}")

    def _check_scores(self):
        machine = SlateStateMachine(GameScoreNormalizer(self.score_provider))
        result = machine.poll()

        for error in result["errors"]:
            logger.warning(f"Score check: {error}")
        if result["games_updated"] or result["slates_finalized"]:
            logger.info(f"Score check: {result['message']}")

        return {
            "games_updated": result["games_updated"],
            "slates_finalized": result["slates_finalized"],
        }

    def _finalize(self):
        finalized = 0
        for slate in Slate.get_outstanding():
            result = finalize_slate(slate.id)
            logger.info(f"Finalize {slate.date}: {result['message']}")
            if result["finalized"]:
                finalized += 1
        return {"slates_finalized": finalized}

    def _update_stats(self, success, games_updated=0, slates_finalized=0):
        """Update sync statistics"""
        self.sync_stats["last_sync"] = datetime.now(timezone.utc)
        self.sync_stats["total_syncs"] += 1

        if success:
            self.sync_stats["successful_syncs"] += 1
            self.sync_stats["games_updated"] += games_updated
            self.sync_stats["slates_finalized"] += slates_finalized
            self.sync_stats["last_error"] = None
        else:
            self.sync_stats["failed_syncs"] += 1

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
        if stats["last_sync"]:
            stats["last_sync"] = stats["last_sync"].isoformat()

        providers = {}
        for role, provider in (
            ("schedule", self.schedule_provider),
            ("score", self.score_provider),
        ):
            if hasattr(provider, "get_rate_limit_status"):
                providers[role] = provider.get_rate_limit_status()

        return {
            "is_running": self.is_running,
            "jobs": jobs,
            "stats": stats,
            "providers": providers,
        }

    def force_sync(self, sync_type="check_scores"):
        """Manually trigger a job"""
        if self.app is None:
            return False, "Scheduler not initialized"

        if sync_type not in self.JOB_TYPES:
            return False, f"Unknown sync type: {sync_type}"

        if not self._run_job(sync_type):
            return False, self.sync_stats["last_error"]
        return True, f"Manual {sync_type} run completed"

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
