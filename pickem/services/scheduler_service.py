"""
Background score refresh

Periodically rescores every league week containing a FINAL game whose
result changed since it was last scored.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pickem import db
from pickem.models import Game, GameStatus
from pickem.services.score_calculator import rescore_week

logger = logging.getLogger(__name__)


def rescore_finalized_games():
    """
    Rescore each week holding a FINAL game that needs scoring.

    Must run inside an application context.

    Returns:
        dict with ``weeks`` rescored and ``rows`` written
    """
    finals = Game.query.filter(Game.status == GameStatus.FINAL).all()
    weeks = sorted({(g.season, g.week) for g in finals if g.needs_scoring()})

    rows = 0
    for season, week in weeks:
        results = rescore_week(season, week)
        rows += sum(results.values())
        logger.info(
            f"Rescored season {season} week {week}: {len(results)} leagues, "
            f"{sum(results.values())} rows"
        )

    return {"weeks": weeks, "rows": rows}


class SchedulerService:
    """Manages the background score-refresh job"""

    JOB_ID = "rescore_finalized_games"

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.run_stats = {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "weeks_rescored": 0,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        # Register shutdown
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
        interval = self.app.config.get("SCORE_REFRESH_INTERVAL", 120)

        self.scheduler.add_job(
            func=self._rescore_job,
            trigger=IntervalTrigger(seconds=interval),
            id=self.JOB_ID,
            name="Rescore Finalized Games",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        logger.info(f"Score refresh job added (every {interval}s)")

    def _rescore_job(self):
        with self.app.app_context():
            try:
                summary = rescore_finalized_games()
                self._update_stats(True, len(summary["weeks"]))
            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.run_stats["last_error"] = str(e)
                logger.error(f"Error in score refresh: {e}", exc_info=True)
            finally:
                db.session.remove()

    def _update_stats(self, success, weeks_rescored=0):
        self.run_stats["last_run"] = datetime.now(timezone.utc)
        self.run_stats["total_runs"] += 1

        if success:
            self.run_stats["successful_runs"] += 1
            self.run_stats["weeks_rescored"] += weeks_rescored
            self.run_stats["last_error"] = None
        else:
            self.run_stats["failed_runs"] += 1

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

        return {"is_running": self.is_running, "jobs": jobs, "stats": self.run_stats}

    def run_once(self, app=None):
        """Run the refresh job immediately in the calling thread"""
        if app is not None:
            self.app = app
        self._rescore_job()
        return self.run_stats


# Global scheduler instance
scheduler_service = SchedulerService()
