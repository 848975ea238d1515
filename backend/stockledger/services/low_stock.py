"""Low-Stock Classifier.

An item is flagged when any of these holds for the day's balance:
- remaining is zero
- total > 0 and remaining / total <= threshold_percent
- total > 0 and remaining <= threshold_absolute
- total == 0 and the day has no movements and no beginning at all ("no data")

Thresholds come from the ``app_settings`` store (``lowStockThresholdPercent``,
``lowStockThreshold``) and fall back to configuration.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.models.setting import AppSetting
from stockledger.services.balance_calculator import DailyBalance

logger = logging.getLogger(__name__)

PERCENT_SETTING_KEY = "lowStockThresholdPercent"
ABSOLUTE_SETTING_KEY = "lowStockThreshold"


def is_low_stock(
    balance: DailyBalance,
    threshold_percent: float = 0.2,
    threshold_absolute: int = 10,
) -> bool:
    remaining = balance.remaining
    total = balance.total_inventory

    if remaining == 0:
        return True
    if total > 0 and remaining / total <= threshold_percent:
        return True
    if total > 0 and remaining <= threshold_absolute:
        return True
    return total == 0 and balance.movement_count == 0 and not balance.has_beginning


@dataclass(frozen=True)
class LowStockThresholds:
    percent: float = 0.2
    absolute: int = 10

    def classify(self, balance: DailyBalance) -> bool:
        return is_low_stock(balance, self.percent, self.absolute)

    @classmethod
    def load(cls, db: Session) -> "LowStockThresholds":
        """Read thresholds from the settings store, falling back to config defaults."""
        percent = settings.low_stock_threshold_percent
        absolute = settings.low_stock_threshold_absolute

        rows = db.query(AppSetting).filter(
            AppSetting.key.in_([PERCENT_SETTING_KEY, ABSOLUTE_SETTING_KEY])
        ).all()
        for row in rows:
            try:
                value = float(row.parsed_value())
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric setting {row.key}={row.value!r}")
                continue
            if row.key == PERCENT_SETTING_KEY:
                # Accept both 0.2 and 20 (percent) spellings
                percent = value / 100 if value > 1 else value
            else:
                absolute = int(value)

        return cls(percent=percent, absolute=absolute)
