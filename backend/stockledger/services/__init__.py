# Services module

from stockledger.services.balance_calculator import BalanceCalculator, DailyBalance, reduce_movements
from stockledger.services.roll_forward_service import RollForwardEngine
from stockledger.services.movement_service import MovementService
from stockledger.services.low_stock import LowStockThresholds, is_low_stock
from stockledger.services.daily_inventory_service import DailyInventoryService

__all__ = [
    "BalanceCalculator",
    "DailyBalance",
    "reduce_movements",
    "RollForwardEngine",
    "MovementService",
    "LowStockThresholds",
    "is_low_stock",
    "DailyInventoryService",
]
