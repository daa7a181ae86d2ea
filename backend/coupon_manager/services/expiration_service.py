"""Daily scan for coupons about to expire.

The scan only reads: it derives statuses, logs what it found and optionally
sends a Telegram summary. It never changes a coupon.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from coupon_manager.core.config import settings
from coupon_manager.models.coupon import Coupon, CouponStatus
from coupon_manager.models.shared import utc_now
from coupon_manager.repositories.coupon_repository import CouponRepository
from coupon_manager.services.coupon_stats import count_by_status
from coupon_manager.services.coupon_status import calculate_status, days_until_expiration, is_spent
from coupon_manager.services.telegram_bot import TelegramClient

logger = logging.getLogger(__name__)


@dataclass
class ExpiringCoupon:
    id: str
    code: str
    company: str
    expiration_date: str
    days_left: int


@dataclass
class ExpirationReport:
    expiring_soon: list[ExpiringCoupon] = field(default_factory=list)
    expiring_today: list[ExpiringCoupon] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)
    notified: bool = False


def _expiring(coupon: Coupon, now: datetime) -> ExpiringCoupon:
    return ExpiringCoupon(
        id=str(coupon.id),
        code=str(coupon.code),
        company=str(coupon.company),
        expiration_date=coupon.expiration_date.isoformat(),
        days_left=days_until_expiration(coupon.expiration_date, now),
    )


class ExpirationCheckService:
    """Finds expiring coupons and reports them."""

    def __init__(self, db: Session, telegram_client: TelegramClient | None = None):
        self.db = db
        self.coupon_repo = CouponRepository(db)
        self.telegram_client = telegram_client or TelegramClient()

    def run_expiration_check(self, now: datetime | None = None) -> ExpirationReport:
        current = now or utc_now()
        coupons = self.coupon_repo.get_all()

        expiring = [
            c for c in coupons if calculate_status(c, current) == CouponStatus.EXPIRING
        ]
        expiring.sort(key=lambda c: c.expiration_date)
        today = current.date()
        expiring_today = [
            c for c in coupons if c.expiration_date == today and not is_spent(c)
        ]

        report = ExpirationReport(
            expiring_soon=[_expiring(c, current) for c in expiring],
            expiring_today=[_expiring(c, current) for c in expiring_today],
            summary=count_by_status(coupons, current),
        )

        for item in report.expiring_soon:
            logger.info(
                "%s (%s) expires in %d day(s)", item.code, item.company, item.days_left
            )
        for item in report.expiring_today:
            logger.warning("%s (%s) expires today", item.code, item.company)
        if not report.expiring_soon and not report.expiring_today:
            logger.info("No coupons expiring soon")
        logger.info("Coupon status summary: %s", report.summary)

        message = self.build_notification(report)
        if message and settings.TELEGRAM_CHAT_ID:
            report.notified = self.telegram_client.send_message(settings.TELEGRAM_CHAT_ID, message)

        return report

    def build_notification(self, report: ExpirationReport) -> str | None:
        """Notification text, or None when nothing is about to expire."""
        today_ids = {c.id for c in report.expiring_today}
        upcoming = [c for c in report.expiring_soon if c.id not in today_ids]
        if not upcoming and not report.expiring_today:
            return None

        lines: list[str] = []
        if report.expiring_today:
            lines.append(f"🚨 {len(report.expiring_today)} coupon(s) expire TODAY!")
            lines.extend(f"❗ {c.code} ({c.company})" for c in report.expiring_today)
            lines.append("")
        if upcoming:
            lines.append(
                f"⏰ {len(upcoming)} coupon(s) expiring in the next "
                f"{settings.EXPIRING_SOON_DAYS} days"
            )
            lines.extend(
                f"• {c.code} ({c.company}) - {c.days_left} day(s) left"
                for c in upcoming
            )
        return "\n".join(lines).rstrip()
