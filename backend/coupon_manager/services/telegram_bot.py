"""Telegram bot: command replies and message delivery."""

import logging
from datetime import datetime

import httpx
from sqlalchemy.orm import Session

from coupon_manager.core.config import settings
from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.models.shared import utc_now
from coupon_manager.schemas.coupon import CouponResponse
from coupon_manager.services.coupon_service import CouponFilters, CouponService
from coupon_manager.services.coupon_status import days_until_expiration
from coupon_manager.services.usage_engine import format_amount

logger = logging.getLogger(__name__)

LIST_LIMIT = 10

STATUS_LABELS = {
    CouponStatus.ACTIVE: "✅ Active",
    CouponStatus.USED: "✅ Used",
    CouponStatus.EXPIRING: "⚠️ Expiring Soon",
    CouponStatus.EXPIRED: "❌ Expired",
}

WELCOME_TEXT = (
    "🎫 Welcome to Coupon Manager!\n\n"
    "Available commands:\n"
    "/list [company] - List your coupons\n"
    "/company <name> - Get coupons by company\n"
    "/expiring - Show expiring coupons\n"
    "/stats - Show statistics"
)

HELP_TEXT = "🤔 Unknown command. Send /start to see what I can do."


class TelegramClient:
    """Minimal Telegram Bot API client."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        timeout: float = 10.0,
    ):
        self.token = settings.TELEGRAM_BOT_TOKEN if token is None else token
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip("/")
        self.timeout = timeout

    def send_message(self, chat_id: int | str, text: str) -> bool:
        """Send a text message. Returns True on success, False otherwise."""
        if not self.token:
            logger.debug("Telegram bot token not configured, not sending message")
            return False

        url = f"{self.api_url}/bot{self.token}/sendMessage"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(url, json={"chat_id": chat_id, "text": text})
        except httpx.HTTPError as exc:
            logger.warning("Telegram delivery to chat %s failed: %s", chat_id, exc)
            return False

        if 200 <= resp.status_code < 300:
            return True
        logger.warning(
            "Telegram delivery to chat %s failed with HTTP %s: %s",
            chat_id,
            resp.status_code,
            resp.text[:200] if resp.text else "",
        )
        return False


def coupon_value(coupon: CouponResponse) -> str:
    if coupon.type == CouponType.MONEY:
        remaining = coupon.remaining_amount
        amount = format_amount(remaining) if remaining is not None else "0"
        return f"{amount} {coupon.currency or settings.DEFAULT_CURRENCY}"
    return coupon.product_description or ""


class TelegramBotService:
    """Turns bot commands into reply texts."""

    def __init__(self, db: Session):
        self.coupon_service = CouponService(db)

    def handle_command(self, text: str, now: datetime | None = None) -> str | None:
        """Reply to a command message; plain messages get no reply."""
        text = text.strip()
        if not text.startswith("/"):
            return None

        command, _, argument = text.partition(" ")
        command = command.split("@", 1)[0].lower()
        argument = argument.strip()
        current = now or utc_now()

        if command == "/start":
            return WELCOME_TEXT
        if command == "/list":
            return self.list_coupons(argument or None, current)
        if command == "/company":
            if not argument:
                return "Usage: /company <name>"
            return self.list_coupons(argument, current)
        if command == "/expiring":
            return self.expiring_coupons(current)
        if command == "/stats":
            return self.stats(current)
        return HELP_TEXT

    def list_coupons(self, company: str | None, now: datetime) -> str:
        page = self.coupon_service.list_coupons(
            CouponFilters(company_contains=company), limit=LIST_LIMIT, now=now
        )
        if not page.coupons:
            return "📭 No coupons found."

        lines = [f'🎫 Coupons for "{company}":' if company else "🎫 Your recent coupons:", ""]
        for index, coupon in enumerate(page.coupons, start=1):
            expiration = coupon.expiration_date
            expires = expiration.isoformat() if expiration else "No expiration"
            lines.append(f"{index}. {coupon.code} - {coupon.company}")
            lines.append(f"   💰 {coupon_value(coupon)}")
            lines.append(f"   📅 Expires: {expires}")
            lines.append(f"   🔍 Status: {STATUS_LABELS[coupon.status]}")
            lines.append("")
        return "\n".join(lines).rstrip()

    def expiring_coupons(self, now: datetime) -> str:
        page = self.coupon_service.list_coupons(
            CouponFilters(status=CouponStatus.EXPIRING), limit=settings.MAX_PAGE_LIMIT, now=now
        )
        if not page.coupons:
            return f"✅ No coupons expiring in the next {settings.EXPIRING_SOON_DAYS} days!"

        dated = sorted(
            ((c, c.expiration_date) for c in page.coupons if c.expiration_date is not None),
            key=lambda pair: pair[1],
        )
        lines = ["⏰ Coupons expiring soon:", ""]
        for index, (coupon, expires) in enumerate(dated, start=1):
            days_left = days_until_expiration(expires, now)
            lines.append(f"{index}. {coupon.code} - {coupon.company}")
            lines.append(f"   ⏳ Expires in {days_left} day(s)")
            lines.append(f"   📅 {expires.isoformat()}")
            lines.append("")
        return "\n".join(lines).rstrip()

    def stats(self, now: datetime) -> str:
        stats = self.coupon_service.stats_summary(now)
        return (
            "📊 Your Coupon Statistics:\n\n"
            f"🎫 Total Coupons: {stats.total_coupons}\n"
            f"💰 Active Money Coupons: {stats.active_money_coupons}\n"
            f"🎁 Active Product Coupons: {stats.active_product_coupons}\n"
            f"⏰ Expiring Soon: {stats.expiring_soon}\n"
            f"💵 Total Value: {format_amount(stats.total_value)} {settings.DEFAULT_CURRENCY}\n"
            f"🏢 Companies: {stats.total_companies}"
        )
