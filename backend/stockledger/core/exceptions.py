"""Inventory error taxonomy.

Services raise these; ``stockledger.main`` maps them onto HTTP responses.
None of them are retried by the core, only ``ConflictError`` is safe for a
caller to retry.
"""

from datetime import date
from typing import Optional


class InventoryError(Exception):
    """Base error class for inventory issues."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ItemNotFoundError(InventoryError):
    """Raised when an item (or movement) does not exist."""

    status_code = 404

    def __init__(self, item_id: int, what: str = "Inventory item"):
        self.item_id = item_id
        super().__init__(f"{what} {item_id} not found")


class StockValidationError(InventoryError):
    """Bad quantity, bad date bounds, unknown kind or inactive item."""

    status_code = 422


class LookbackExceededError(StockValidationError):
    """Roll-forward would have to walk further back than allowed."""

    def __init__(self, item_id: int, day: date, start: date, max_days: int):
        self.item_id = item_id
        self.day = day
        self.start = start
        self.max_days = max_days
        super().__init__(
            f"Item {item_id}: history for {day.isoformat()} starts at {start.isoformat()}, "
            f"more than {max_days} days back"
        )


class InsufficientStockError(InventoryError):
    """Raised when an out/spoilage quantity exceeds the stock available on a date."""

    status_code = 400

    def __init__(
        self,
        item_id: int,
        available: int,
        requested: int,
        day: Optional[date] = None,
        unit: str = "",
    ):
        self.item_id = item_id
        self.available = available
        self.requested = requested
        self.day = day
        self.unit = unit
        on_day = f" for {day.isoformat()}" if day else ""
        super().__init__(
            f"Insufficient stock{on_day}. Available: {available}, Requested: {requested}"
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.available

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "available": self.available,
            "requested": self.requested,
            "shortfall": self.shortfall,
        }


class ConflictError(InventoryError):
    """Transactional serialization failure reported by the store."""

    status_code = 409

    def to_dict(self) -> dict:
        return {"detail": self.message, "retryable": True}
