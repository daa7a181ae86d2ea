import logging
from typing import Any
from zoneinfo import ZoneInfo

from arq import cron

from coupon_manager.core.config import settings
from coupon_manager.core.database import session_scope
from coupon_manager.repositories.idempotency_repository import IdempotencyRepository
from coupon_manager.services.expiration_service import ExpirationCheckService
from coupon_manager.tasks import redis_settings

logger = logging.getLogger(__name__)


async def check_expiring_coupons_task(ctx: dict[str, Any]) -> int:
    """Background task: log (and notify about) coupons expiring soon.

    Runs daily. Returns the number of coupons expiring within the window.
    """
    with session_scope() as db:
        service = ExpirationCheckService(db)
        report = service.run_expiration_check()
        if report.notified:
            logger.info("Sent expiration notification for %d coupons", len(report.expiring_soon))
        return len(report.expiring_soon)


async def purge_idempotency_records_task(ctx: dict[str, Any]) -> int:
    """Background task: drop idempotency records older than a day."""
    with session_scope() as db:
        count = IdempotencyRepository(db).purge_older_than(hours=24)
        if count > 0:
            logger.info("Purged %d idempotency records", count)
        return count


class WorkerSettings:
    functions = [
        check_expiring_coupons_task,
        purge_idempotency_records_task,
    ]
    cron_jobs = [
        cron(check_expiring_coupons_task, hour=settings.EXPIRATION_CHECK_HOUR, minute=0),
        cron(purge_idempotency_records_task, hour=3, minute=30),
    ]
    redis_settings = redis_settings
    timezone = ZoneInfo(settings.EXPIRATION_CHECK_TIMEZONE)
