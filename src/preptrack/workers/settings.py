"""arq worker settings module.

Import path for arq CLI: arq preptrack.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from preptrack.config import get_settings
from preptrack.workers.jobs import (
    generate_daily_challenges,
    purge_expired,
    refresh_leaderboards,
    shutdown,
    startup,
)


class WorkerSettings:
    """arq worker settings for the scheduled jobs (all times UTC)."""

    functions = [generate_daily_challenges, refresh_leaderboards, purge_expired]
    cron_jobs = [
        cron(generate_daily_challenges, hour=0, minute=0, run_at_startup=False),
        cron(refresh_leaderboards, minute={0, 15, 30, 45}),
        cron(purge_expired, hour=3, minute=30),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
    job_timeout = 600
