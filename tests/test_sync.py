"""Tests for account synchronisation."""

import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from desco_report.models import (
    DailyConsumption,
    LocationRecord,
    MonthlyConsumption,
    RecentEvent,
    RechargeRecord,
    UtilityAccount,
)
from desco_report.models.enums import SyncStatus, SyncStepStatus
from desco_report.services import reconciler, sync
from desco_report.services.desco_client import (
    BALANCE_PATH,
    DAILY_CONSUMPTION_PATH,
    MONTHLY_CONSUMPTION_PATH,
    RECHARGE_HISTORY_PATH,
)

TODAY = date(2024, 3, 31)


def count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


class TestWindows:
    """Tests for the date window helpers."""

    @pytest.mark.parametrize(
        ("day", "months", "expected"),
        [
            (date(2024, 3, 31), -1, date(2024, 2, 29)),
            (date(2024, 3, 31), -12, date(2023, 3, 31)),
            (date(2024, 1, 15), -6, date(2023, 7, 15)),
            (date(2023, 8, 31), 6, date(2024, 2, 29)),
        ],
    )
    def test_shift_months_clamps_day(self, day, months, expected):
        assert sync.shift_months(day, months) == expected

    def test_windows(self):
        assert sync.daily_window(TODAY) == (date(2024, 3, 1), TODAY)
        assert sync.monthly_window(TODAY) == (date(2023, 3, 31), TODAY)
        assert sync.recharge_window(TODAY) == (date(2023, 9, 30), TODAY)


class TestValidateAccount:
    """Tests for validate_account."""

    def test_valid_when_balance_available(self, test_db, provider, desco_client):
        provider.load_account()
        assert sync.validate_account(desco_client, "A1", "M1") is True
        # Validation alone never stores anything
        assert count(test_db, UtilityAccount) == 0

    def test_invalid_when_provider_has_no_data(self, provider, desco_client):
        provider.set(BALANCE_PATH, None, code=404, desc="not found")
        assert sync.validate_account(desco_client, "A1", "M1") is False


class TestSyncAccount:
    """Tests for sync_account."""

    def test_full_sync_stores_every_category(self, test_db, provider, desco_client):
        provider.load_account()
        report = sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        assert report.status is SyncStatus.COMPLETED
        assert [s.name for s in report.steps] == [
            "balance",
            "daily_consumption",
            "monthly_consumption",
            "recharge_history",
            "recent_events",
            "location",
        ]
        assert all(s.status is SyncStepStatus.SUCCEEDED for s in report.steps)

        account = test_db.scalars(select(UtilityAccount)).one()
        assert account.current_balance == Decimal("120.50")
        assert account.address == "House 1, Road 2, Gulshan-2, Dhaka"
        assert count(test_db, DailyConsumption) == 2
        assert count(test_db, MonthlyConsumption) == 2
        assert count(test_db, RechargeRecord) == 2
        assert count(test_db, RecentEvent) == 1
        assert count(test_db, LocationRecord) == 1

    def test_sync_requests_expected_windows(self, test_db, provider, desco_client):
        provider.load_account()
        sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        (daily,) = provider.requests_to(DAILY_CONSUMPTION_PATH)
        assert daily.url.params["dateFrom"] == "2024-03-01"
        assert daily.url.params["dateTo"] == "2024-03-31"
        (monthly,) = provider.requests_to(MONTHLY_CONSUMPTION_PATH)
        assert monthly.url.params["monthFrom"] == "2023-03"
        assert monthly.url.params["monthTo"] == "2024-03"
        (recharge,) = provider.requests_to(RECHARGE_HISTORY_PATH)
        assert recharge.url.params["dateFrom"] == "2023-09-30"

    def test_repeated_sync_is_idempotent(self, test_db, provider, desco_client):
        provider.load_account()
        sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)
        sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        assert count(test_db, UtilityAccount) == 1
        assert count(test_db, DailyConsumption) == 2
        assert count(test_db, MonthlyConsumption) == 2
        assert count(test_db, RechargeRecord) == 2
        assert count(test_db, RecentEvent) == 1
        assert count(test_db, LocationRecord) == 1

    def test_empty_categories_do_not_fail_sync(self, test_db, provider, desco_client):
        provider.load_account()
        provider.set(DAILY_CONSUMPTION_PATH, None)
        provider.set(RECHARGE_HISTORY_PATH, [])

        report = sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        assert report.status is SyncStatus.COMPLETED
        assert report.step("daily_consumption").status is SyncStepStatus.EMPTY
        assert report.step("recharge_history").status is SyncStepStatus.EMPTY
        assert report.step("monthly_consumption").status is SyncStepStatus.SUCCEEDED

    def test_failing_step_does_not_stop_later_steps(
        self, test_db, provider, desco_client, monkeypatch
    ):
        provider.load_account()

        def explode(db, account, records):
            raise RuntimeError("storage hiccup")

        monkeypatch.setattr(reconciler, "reconcile_monthly_consumption", explode)

        report = sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        assert report.status is SyncStatus.FAILED
        failed = report.step("monthly_consumption")
        assert failed.status is SyncStepStatus.FAILED
        assert failed.error == "storage hiccup"
        assert report.step("recharge_history").status is SyncStepStatus.SUCCEEDED
        assert report.step("location").status is SyncStepStatus.SUCCEEDED
        assert count(test_db, DailyConsumption) == 2
        assert count(test_db, MonthlyConsumption) == 0
        assert count(test_db, RechargeRecord) == 2

    def test_without_balance_records_are_not_stored(self, test_db, provider, desco_client):
        provider.load_account()
        provider.set(BALANCE_PATH, None)

        report = sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        assert report.status is SyncStatus.COMPLETED
        assert report.step("balance").status is SyncStepStatus.EMPTY
        assert report.step("daily_consumption").status is SyncStepStatus.SKIPPED
        assert count(test_db, UtilityAccount) == 0
        assert count(test_db, DailyConsumption) == 0

    def test_without_balance_existing_account_still_synced(
        self, test_db, provider, desco_client
    ):
        test_db.add(UtilityAccount(account_number="A1", meter_number="M1"))
        test_db.commit()
        provider.load_account()
        provider.set(BALANCE_PATH, None)

        report = sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)

        assert report.step("daily_consumption").status is SyncStepStatus.SUCCEEDED
        assert count(test_db, DailyConsumption) == 2

    def test_same_account_syncs_are_serialised(self, test_db, provider, desco_client):
        provider.load_account()
        lock_held = threading.Event()
        finished = threading.Event()

        def second_sync():
            lock_held.wait(timeout=5)
            sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)
            finished.set()

        worker = threading.Thread(target=second_sync)
        worker.start()
        with sync._account_lock("A1", "M1"):
            lock_held.set()
            # The worker cannot get past the lock while it is held here
            assert not finished.wait(timeout=0.2)
        worker.join(timeout=10)

        assert finished.is_set()

    def test_lock_is_dropped_after_sync(self, test_db, provider, desco_client):
        provider.load_account()
        sync.sync_account(test_db, desco_client, "A1", "M1", today=TODAY)
        assert ("A1", "M1") not in sync._account_locks
