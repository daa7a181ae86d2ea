"""Tests for the daily expiration scan."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from coupon_manager.core.config import settings
from coupon_manager.models.coupon import Coupon, CouponType
from coupon_manager.services.expiration_service import ExpirationCheckService, ExpirationReport
from tests.conftest import NOW, days_from_now, make_coupon


@pytest.fixture
def telegram_client():
    client = MagicMock()
    client.send_message.return_value = True
    return client


@pytest.fixture
def service(db_session, telegram_client):
    return ExpirationCheckService(db_session, telegram_client=telegram_client)


@pytest.fixture
def coupons(db_session):
    make_coupon(db_session, code="TODAY", expiration_date=NOW.date())
    make_coupon(db_session, code="SOON", company="Zara", expiration_date=days_from_now(5))
    make_coupon(
        db_session,
        code="SPA",
        type=CouponType.PRODUCT,
        company="Spa",
        expiration_date=days_from_now(2),
    )
    make_coupon(db_session, code="LATER", expiration_date=days_from_now(30))
    make_coupon(db_session, code="GONE", expiration_date=days_from_now(-4))
    make_coupon(
        db_session,
        code="SPENT",
        remaining_amount=Decimal("0"),
        expiration_date=NOW.date(),
    )


class TestRunExpirationCheck:
    def test_report(self, service, coupons):
        report = service.run_expiration_check(now=NOW)

        assert [c.code for c in report.expiring_soon] == ["TODAY", "SPA", "SOON"]
        assert [c.days_left for c in report.expiring_soon] == [0, 2, 5]
        assert [c.code for c in report.expiring_today] == ["TODAY"]
        assert report.summary == {
            "active": 1,
            "used": 1,
            "expiring": 3,
            "expired": 1,
            "total": 6,
        }

    def test_report_entries(self, service, coupons):
        report = service.run_expiration_check(now=NOW)
        spa = report.expiring_soon[1]
        assert spa.company == "Spa"
        assert spa.expiration_date == days_from_now(2).isoformat()

    def test_does_not_modify_coupons(self, service, coupons, db_session):
        before = {c.code: (c.version, c.updated_at) for c in db_session.query(Coupon)}
        service.run_expiration_check(now=NOW)
        db_session.expire_all()
        after = {c.code: (c.version, c.updated_at) for c in db_session.query(Coupon)}
        assert before == after

    def test_empty_store(self, service, telegram_client):
        report = service.run_expiration_check(now=NOW)
        assert report.expiring_soon == []
        assert report.expiring_today == []
        assert report.summary["total"] == 0
        telegram_client.send_message.assert_not_called()

    def test_notifies_configured_chat(self, service, coupons, telegram_client):
        with patch.object(settings, "TELEGRAM_CHAT_ID", "12345"):
            report = service.run_expiration_check(now=NOW)

        assert report.notified is True
        chat_id, text = telegram_client.send_message.call_args[0]
        assert chat_id == "12345"
        assert "1 coupon(s) expire TODAY" in text
        assert "2 coupon(s) expiring in the next 7 days" in text

    def test_no_chat_configured(self, service, coupons, telegram_client):
        with patch.object(settings, "TELEGRAM_CHAT_ID", ""):
            report = service.run_expiration_check(now=NOW)
        assert report.notified is False
        telegram_client.send_message.assert_not_called()

    def test_delivery_failure_does_not_fail_scan(self, service, coupons, telegram_client):
        telegram_client.send_message.return_value = False
        with patch.object(settings, "TELEGRAM_CHAT_ID", "12345"):
            report = service.run_expiration_check(now=NOW)
        assert report.notified is False
        assert len(report.expiring_soon) == 3


class TestBuildNotification:
    def test_nothing_to_report(self, service):
        assert service.build_notification(ExpirationReport()) is None

    def test_lists_coupons(self, service, coupons):
        report = service.run_expiration_check(now=NOW)
        text = service.build_notification(report)
        assert "❗ TODAY (Acme)" in text
        assert "• SOON (Zara) - 5 day(s) left" in text

    def test_coupon_expiring_today_listed_once(self, service, coupons):
        report = service.run_expiration_check(now=NOW)
        text = service.build_notification(report)
        assert text.count("TODAY (Acme)") == 1
        assert "TODAY (Acme) - 0 day(s) left" not in text

    def test_only_expiring_today(self, service, db_session):
        make_coupon(db_session, code="LAST", expiration_date=NOW.date())
        report = service.run_expiration_check(now=NOW)
        text = service.build_notification(report)
        assert "1 coupon(s) expire TODAY" in text
        assert "expiring in the next" not in text
