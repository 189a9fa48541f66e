"""Scheduler for background meal planner routines."""

import asyncio

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from mealplanner.config.settings import settings
from mealplanner.planner import MealPlanner

logger = structlog.get_logger()


class PlannerScheduler:
    """Runs the daily WHOOP sync and periodic cache eviction."""

    def __init__(self, planner: MealPlanner, user_ids: list[str] | None = None) -> None:
        self.planner = planner
        self.user_ids = user_ids or [settings.planner.default_user_id]
        self.scheduler = AsyncIOScheduler(timezone=settings.timezone)
        self._setup_jobs()

    def _setup_jobs(self) -> None:
        """Configure all scheduled jobs."""

        # Daily WHOOP sync once the night's sleep has been scored
        self.scheduler.add_job(
            self._daily_sync,
            CronTrigger(hour=settings.planner.daily_sync_hour, minute=0, timezone=settings.timezone),
            id="daily_whoop_sync",
            name="Daily WHOOP Sync",
            replace_existing=True,
        )

        self.scheduler.add_job(
            self._evict_caches,
            IntervalTrigger(hours=1),
            id="cache_eviction",
            name="Cache Eviction",
            replace_existing=True,
        )

        logger.info("Scheduled jobs configured")

    async def _daily_sync(self) -> None:
        from mealplanner.adapters.whoop import sync_whoop_data

        for user_id in self.user_ids:
            logger.info("Running daily WHOOP sync", user_id=user_id)
            try:
                stored = await sync_whoop_data(user_id, days=2)
                logger.info("Daily WHOOP sync complete", user_id=user_id, records=stored)
            except Exception as e:
                logger.error("Daily WHOOP sync failed", user_id=user_id, error=str(e))

    async def _evict_caches(self) -> None:
        evicted = self.planner.evict_stale()
        logger.info("Cache eviction complete", evicted=evicted)

    def start(self) -> None:
        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self) -> None:
        self.scheduler.shutdown()
        logger.info("Scheduler stopped")

    def list_jobs(self) -> list[dict[str, str]]:
        jobs = []
        for job in self.scheduler.get_jobs():
            # Pending jobs have no next run time until the scheduler starts
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": str(next_run) if next_run else "Not scheduled",
                }
            )
        return jobs


async def run_scheduler() -> None:
    """Run the scheduler until cancelled."""
    from mealplanner.db import init_db

    await init_db()
    scheduler = PlannerScheduler(MealPlanner())
    scheduler.start()
    try:
        while True:
            await asyncio.sleep(60)
    except asyncio.CancelledError:
        scheduler.stop()
        raise
