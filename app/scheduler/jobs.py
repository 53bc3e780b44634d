"""
app/scheduler/jobs.py

APScheduler-based housekeeping for the in-process query cache.

Expired cache entries are already ignored on read; the sweep only reclaims
the memory they hold. It runs on a fixed interval (``CACHE_SWEEP_INTERVAL_SECONDS``,
default five minutes) and is not registered at all when the interval is zero
or negative.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down on app shutdown. The scheduler is wired
into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.cache import TTLCache

logger = logging.getLogger(__name__)

CACHE_SWEEP_JOB_ID = "purge_expired_cache"


# ---------------------------------------------------------------------------
# Job: cache sweep
# ---------------------------------------------------------------------------


def purge_expired_cache(cache: TTLCache) -> int:
    """
    Remove expired entries from ``cache`` and return how many were dropped.
    """
    removed = cache.purge_expired()
    if removed:
        logger.info("Scheduler: purge_expired_cache removed=%d remaining=%d", removed, len(cache))
    else:
        logger.debug("Scheduler: purge_expired_cache nothing expired")
    return removed


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(cache: TTLCache, *, sweep_interval_seconds: float) -> BackgroundScheduler:
    """
    Build the scheduler and register the cache sweep.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown()`` at the
    appropriate lifecycle points.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    if sweep_interval_seconds <= 0:
        logger.info("Scheduler: cache sweep disabled (interval=%s)", sweep_interval_seconds)
        return scheduler

    scheduler.add_job(
        purge_expired_cache,
        trigger="interval",
        seconds=sweep_interval_seconds,
        args=[cache],
        id=CACHE_SWEEP_JOB_ID,
        name="Expired cache entry sweep",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler
