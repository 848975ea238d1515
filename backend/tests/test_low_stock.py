"""Tests for low-stock classification."""

import pytest

from stockledger.core.config import settings
from stockledger.models.setting import AppSetting, SettingType
from stockledger.services.balance_calculator import DailyBalance
from stockledger.services.low_stock import LowStockThresholds, is_low_stock

from conftest import TODAY


def _balance(total, remaining, movement_count=1, has_beginning=True):
    return DailyBalance(
        item_id=1,
        date=TODAY,
        beginning=total,
        total_inventory=total,
        remaining=remaining,
        movement_count=movement_count,
        has_beginning=has_beginning,
    )


class TestIsLowStock:
    def test_zero_remaining(self):
        assert is_low_stock(_balance(100, 0)) is True

    def test_healthy_stock(self):
        assert is_low_stock(_balance(100, 50)) is False

    def test_percent_boundary_is_inclusive(self):
        assert is_low_stock(_balance(100, 20), threshold_percent=0.2, threshold_absolute=0) is True
        assert is_low_stock(_balance(100, 21), threshold_percent=0.2, threshold_absolute=0) is False

    def test_absolute_boundary_is_inclusive(self):
        assert is_low_stock(_balance(1000, 10), threshold_percent=0.0, threshold_absolute=10) is True
        assert is_low_stock(_balance(1000, 11), threshold_percent=0.0, threshold_absolute=10) is False

    def test_no_data_day(self):
        assert is_low_stock(_balance(0, 0, movement_count=0, has_beginning=False)) is True

    def test_adjusted_up_without_total(self):
        """An adjustment can leave stock on a day with no beginning or receipts."""
        assert is_low_stock(_balance(0, 40, movement_count=1, has_beginning=False)) is False


class TestLowStockThresholds:
    def test_defaults_from_config(self, db_session):
        thresholds = LowStockThresholds.load(db_session)
        assert thresholds.percent == settings.low_stock_threshold_percent
        assert thresholds.absolute == settings.low_stock_threshold_absolute

    def test_settings_store_overrides(self, db_session):
        db_session.add_all([
            AppSetting(key="lowStockThresholdPercent", value="0.5", value_type=SettingType.NUMBER),
            AppSetting(key="lowStockThreshold", value="3", value_type=SettingType.NUMBER),
        ])
        db_session.commit()

        thresholds = LowStockThresholds.load(db_session)
        assert thresholds.percent == 0.5
        assert thresholds.absolute == 3
        assert thresholds.classify(_balance(100, 50)) is True
        assert thresholds.classify(_balance(100, 51)) is False

    def test_percent_written_as_whole_number(self, db_session):
        db_session.add(AppSetting(key="lowStockThresholdPercent", value="25", value_type=SettingType.NUMBER))
        db_session.commit()
        assert LowStockThresholds.load(db_session).percent == pytest.approx(0.25)

    def test_garbage_value_falls_back(self, db_session):
        db_session.add(AppSetting(key="lowStockThreshold", value="lots", value_type=SettingType.STRING))
        db_session.commit()
        assert LowStockThresholds.load(db_session).absolute == settings.low_stock_threshold_absolute
