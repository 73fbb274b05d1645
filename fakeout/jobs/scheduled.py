import logging

logger = logging.getLogger(__name__)


def _feed_refresh_job(app):
    with app.app_context():
        logger.info("[Job] Feed refresh")
        from fakeout.pipeline.ingest import ingest_sources
        added = ingest_sources()
        logger.info(f"[Job] Feed refresh: {len(added)} new articles")


def _replenish_job(app):
    with app.app_context():
        logger.info("[Job] Corpus replenishment")
        from fakeout.pipeline.replenish import run_replenishment
        result = run_replenishment()
        logger.info(f"[Job] Replenishment: {result['status']}")


def _upsert_job(scheduler, **kwargs):
    scheduler.add_job(replace_existing=True, **kwargs)


def register_jobs(scheduler, app):
    """Register all scheduled jobs."""
    _upsert_job(
        scheduler,
        id='feed_refresh',
        func=_feed_refresh_job,
        trigger='cron',
        args=[app],
        hour='6-22/4',
        misfire_grace_time=1800,
        coalesce=True,
        max_instances=1,
    )
    _upsert_job(
        scheduler,
        id='replenish',
        func=_replenish_job,
        trigger='cron',
        args=[app],
        minute=15,
        misfire_grace_time=900,
        coalesce=True,
        max_instances=1,
    )

    logger.info("All scheduled jobs registered")
