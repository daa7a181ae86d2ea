"""Enqueueing jobs for the arq worker from outside it (CLI, admin hooks)."""

from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from coupon_manager.core.config import settings

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """Queue ``task_name`` on the worker and close the pool again.

    ``task_name`` must be the name of a function listed in
    ``WorkerSettings.functions``.
    """
    pool = await get_redis_pool()
    try:
        job = await pool.enqueue_job(task_name, *args, **kwargs)
        return job  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_expiration_check() -> Job:
    """Run the expiration scan now instead of waiting for the daily cron."""
    return await enqueue_task("check_expiring_coupons_task")
