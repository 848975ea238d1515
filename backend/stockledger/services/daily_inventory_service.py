"""Daily inventory read model.

Reads are not side-effect free: computing a day first rolls the item forward,
so the materialized beginnings are committed here before the balance is
returned.
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from stockledger.core.clock import Clock, SystemClock
from stockledger.core.exceptions import ItemNotFoundError, StockValidationError
from stockledger.models.item import InventoryItem
from stockledger.models.movement import MovementKind, StockMovement
from stockledger.services.balance_calculator import BalanceCalculator, DailyBalance
from stockledger.services.low_stock import LowStockThresholds
from stockledger.services.roll_forward_service import RollForwardEngine

logger = logging.getLogger(__name__)

TOTAL_FIELDS = ("beginning", "in_quantity", "out_quantity", "spoilage", "total_inventory", "remaining")


def _empty_totals() -> Dict[str, int]:
    return {field: 0 for field in TOTAL_FIELDS}


def _add_to_totals(totals: Dict[str, int], balance: DailyBalance) -> None:
    for field in TOTAL_FIELDS:
        totals[field] += getattr(balance, field)


def _item_row(item: InventoryItem, balance: DailyBalance, low_stock: bool) -> Dict[str, Any]:
    row = balance.to_dict()
    row.update({
        "name": item.name,
        "unit": item.unit,
        "category": item.category,
        "low_stock": low_stock,
    })
    return row


class DailyInventoryService:
    """Per-day balances, category sheets and dashboard figures."""

    def __init__(self, db: Session, clock: Optional[Clock] = None, max_lookback_days: Optional[int] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.calculator = BalanceCalculator(db)
        self.roll_forward = RollForwardEngine(db, max_lookback_days=max_lookback_days)

    def _check_day(self, day: date) -> None:
        if day > self.clock.today():
            raise StockValidationError("Cannot view inventory for a future date")

    def _rolled_balance(self, item_id: int, day: date) -> DailyBalance:
        self.roll_forward.ensure_beginning(item_id, day)
        return self.calculator.compute_balance(item_id, day)

    def get_item_balance(self, item_id: int, day: date) -> Dict[str, Any]:
        """Balance and low-stock flag for one item on one date."""
        self._check_day(day)
        item = self.db.get(InventoryItem, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        try:
            balance = self._rolled_balance(item_id, day)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        thresholds = LowStockThresholds.load(self.db)
        return _item_row(item, balance, thresholds.classify(balance))

    def list_daily_balances(
        self,
        day: date,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Every active item's balance for ``day``, grouped by category."""
        self._check_day(day)

        query = self.db.query(InventoryItem).filter(InventoryItem.is_active.is_(True))
        if category:
            query = query.filter(InventoryItem.category == category)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(InventoryItem.name.ilike(pattern), InventoryItem.category.ilike(pattern)))
        items = query.order_by(InventoryItem.category, InventoryItem.name).all()

        thresholds = LowStockThresholds.load(self.db)
        groups: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        totals = _empty_totals()
        low_stock_count = 0

        try:
            balances = [(item, self._rolled_balance(item.id, day)) for item in items]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for item, balance in balances:
            low = thresholds.classify(balance)
            group = groups.setdefault(item.category, {
                "category": item.category,
                "items": [],
                "totals": _empty_totals(),
            })
            group["items"].append(_item_row(item, balance, low))
            _add_to_totals(group["totals"], balance)
            _add_to_totals(totals, balance)
            if low:
                low_stock_count += 1

        logger.debug(f"Computed {len(balances)} balances for {day.isoformat()}")
        return {
            "date": day.isoformat(),
            "categories": list(groups.values()),
            "totals": totals,
            "item_count": len(balances),
            "low_stock_count": low_stock_count,
        }

    def get_dashboard(self, day: Optional[date] = None) -> Dict[str, Any]:
        """Headline figures: stock on hand, low-stock items, movement totals and receipts."""
        day = day or self.clock.today()
        sheet = self.list_daily_balances(day)

        low_stock_items: List[Dict[str, Any]] = []
        for group in sheet["categories"]:
            low_stock_items.extend(row for row in group["items"] if row["low_stock"])
        low_stock_items.sort(key=lambda row: row["remaining"])

        kind_rows = self.db.query(
            StockMovement.kind, func.coalesce(func.sum(StockMovement.quantity), 0)
        ).join(InventoryItem).filter(
            StockMovement.movement_date == day,
            InventoryItem.is_active.is_(True),
            StockMovement.kind.in_([MovementKind.IN.value, MovementKind.OUT.value, MovementKind.SPOILAGE.value]),
        ).group_by(StockMovement.kind).all()
        movement_totals = {MovementKind.IN.value: 0, MovementKind.OUT.value: 0, MovementKind.SPOILAGE.value: 0}
        for kind, qty in kind_rows:
            movement_totals[kind] = int(qty)

        received_rows = self.db.query(
            InventoryItem.id, InventoryItem.name, InventoryItem.unit, func.sum(StockMovement.quantity)
        ).join(StockMovement).filter(
            StockMovement.movement_date == day,
            StockMovement.kind == MovementKind.IN.value,
            InventoryItem.is_active.is_(True),
        ).group_by(InventoryItem.id, InventoryItem.name, InventoryItem.unit).order_by(InventoryItem.name).all()

        return {
            "date": day.isoformat(),
            "total_items": sheet["item_count"],
            "total_remaining": sheet["totals"]["remaining"],
            "low_stock_count": sheet["low_stock_count"],
            "low_stock_items": low_stock_items,
            "movement_totals": movement_totals,
            "items_received": [
                {"item_id": item_id, "name": name, "unit": unit, "quantity": int(qty)}
                for item_id, name, unit, qty in received_rows
            ],
        }

    def list_movements(
        self,
        item_id: Optional[int] = None,
        kind: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Movement audit trail, newest first, as ``{"rows": [...], "total": n}``."""
        if start and end and start > end:
            raise StockValidationError("start must not be after end")
        if kind is not None:
            try:
                kind = MovementKind(kind).value
            except ValueError:
                raise StockValidationError(f"Invalid movement kind '{kind}'")

        query = self.db.query(StockMovement)
        if item_id is not None:
            query = query.filter(StockMovement.item_id == item_id)
        if kind is not None:
            query = query.filter(StockMovement.kind == kind)
        if start is not None:
            query = query.filter(StockMovement.movement_date >= start)
        if end is not None:
            query = query.filter(StockMovement.movement_date <= end)

        total = query.count()
        rows = query.order_by(
            StockMovement.movement_date.desc(), StockMovement.id.desc()
        ).offset(skip).limit(limit).all()
        return {"rows": rows, "total": total}
