"""SQLAlchemy models."""

from stockledger.models.user import User
from stockledger.models.item import InventoryItem
from stockledger.models.movement import StockMovement, MovementKind, DEFAULT_REASONS
from stockledger.models.setting import AppSetting, SettingType

__all__ = [
    "User",
    "InventoryItem",
    "StockMovement",
    "MovementKind",
    "DEFAULT_REASONS",
    "AppSetting",
    "SettingType",
]
