"""Balance Calculator - derives one item's stock figures for one calendar date.

Only the movements dated on the requested day are read; the calculator never
reaches backwards across dates. Carrying yesterday's remaining into today's
beginning is the job of ``RollForwardEngine``, which must run first.

Reduction is by kind priority, not insertion order:
1. "beginning": the last-created row for the date wins (duplicates are not summed)
2. "in", "out", "spoilage": summed into their own accumulators
3. "adjustment": the last-created row overwrites ``remaining``

Then ``total_inventory = beginning + in`` and
``remaining = max(0, total_inventory - out - spoilage)`` unless an adjustment
overwrote it.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from stockledger.core.exceptions import ItemNotFoundError
from stockledger.models.item import InventoryItem
from stockledger.models.movement import MovementKind, StockMovement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyBalance:
    """Computed stock figures for one item on one date. Never persisted."""

    item_id: int
    date: date
    beginning: int = 0
    in_quantity: int = 0
    out_quantity: int = 0
    spoilage: int = 0
    total_inventory: int = 0
    remaining: int = 0
    movement_count: int = 0
    has_beginning: bool = False
    adjusted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


def reduce_movements(
    item_id: int,
    day: date,
    movements: Iterable[StockMovement],
    default_beginning: int = 0,
) -> DailyBalance:
    """Fold one date's movements into a ``DailyBalance``.

    Pure: the result depends only on the rows given, not on their order.
    ``default_beginning`` is used only when no "beginning" row is present.
    """
    rows = sorted(movements, key=lambda m: m.id)

    beginning_row: Optional[StockMovement] = None
    adjustment_row: Optional[StockMovement] = None
    in_qty = out_qty = spoilage = 0

    for m in rows:
        if m.kind == MovementKind.BEGINNING:
            beginning_row = m  # rows are in creation order, so the last one wins
        elif m.kind == MovementKind.IN:
            in_qty += m.quantity
        elif m.kind == MovementKind.OUT:
            out_qty += m.quantity
        elif m.kind == MovementKind.SPOILAGE:
            spoilage += m.quantity
        elif m.kind == MovementKind.ADJUSTMENT:
            adjustment_row = m
        else:
            logger.warning(f"Ignoring movement {m.id} with unknown kind '{m.kind}'")

    beginning = beginning_row.quantity if beginning_row is not None else default_beginning
    total_inventory = beginning + in_qty
    if adjustment_row is not None:
        remaining = adjustment_row.quantity
    else:
        remaining = max(0, total_inventory - out_qty - spoilage)

    return DailyBalance(
        item_id=item_id,
        date=day,
        beginning=beginning,
        in_quantity=in_qty,
        out_quantity=out_qty,
        spoilage=spoilage,
        total_inventory=total_inventory,
        remaining=remaining,
        movement_count=len(rows),
        has_beginning=beginning_row is not None,
        adjusted=adjustment_row is not None,
    )


class BalanceCalculator:
    """Computes ``DailyBalance`` values from the movement ledger."""

    def __init__(self, db: Session):
        self.db = db

    def compute_balance(self, item_id: int, day: date) -> DailyBalance:
        """Compute the balance of ``item_id`` on ``day``.

        Raises:
            ItemNotFoundError: the item does not exist.
        """
        exists = self.db.query(InventoryItem.id).filter(InventoryItem.id == item_id).first()
        if exists is None:
            raise ItemNotFoundError(item_id)

        movements = self.db.query(StockMovement).filter(
            StockMovement.item_id == item_id,
            StockMovement.movement_date == day,
        ).all()
        return reduce_movements(item_id, day, movements)
