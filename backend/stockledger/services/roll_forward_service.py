"""Day Roll-Forward Engine - materializes "beginning" movements lazily.

A day's beginning is the previous day's computed remaining. Instead of a
nightly job pre-creating every day, the first read or write that touches an
item+date fills the gap back to the nearest date that already has a
beginning (or to the item's first movement) and walks forward, writing one
synthesized beginning per day.

The walk is iterative and bounded by ``max_lookback_days``. An existing
beginning, manual or synthesized, is never overwritten. Two callers racing
on the same day compute the same value from the same prior remaining; if
both insert, the last-created-wins rule keeps the result deterministic.

The engine flushes but never commits: the caller owns the transaction.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.exceptions import ItemNotFoundError, LookbackExceededError
from stockledger.models.item import InventoryItem
from stockledger.models.movement import MovementKind, StockMovement
from stockledger.services.balance_calculator import reduce_movements

logger = logging.getLogger(__name__)

AUTO_BEGINNING_NOTE = "Auto-calculated from previous day's remaining"
SEED_BEGINNING_NOTE = "Seeded from item opening balance"
AUTO_BEGINNING_REASON = "Auto beginning"


class RollForwardEngine:
    """Ensures an item has a beginning movement for a given date."""

    def __init__(self, db: Session, max_lookback_days: Optional[int] = None):
        self.db = db
        self.max_lookback_days = (
            settings.max_lookback_days if max_lookback_days is None else max_lookback_days
        )

    def has_beginning(self, item_id: int, day: date) -> bool:
        row = self.db.query(StockMovement.id).filter(
            StockMovement.item_id == item_id,
            StockMovement.movement_date == day,
            StockMovement.kind == MovementKind.BEGINNING.value,
        ).first()
        return row is not None

    def ensure_beginning(self, item_id: int, day: date) -> Optional[StockMovement]:
        """Make sure ``item_id`` has a beginning movement on ``day``.

        Returns the movement synthesized for ``day``, or None when one already
        existed (or when the item has no history and nothing to seed).

        Raises:
            ItemNotFoundError: the item does not exist.
            LookbackExceededError: the gap to fill is longer than allowed.
        """
        item = self.db.get(InventoryItem, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        if self.has_beginning(item_id, day):
            return None

        anchor = self.db.query(func.max(StockMovement.movement_date)).filter(
            StockMovement.item_id == item_id,
            StockMovement.kind == MovementKind.BEGINNING.value,
            StockMovement.movement_date < day,
        ).scalar()
        first = self.db.query(func.min(StockMovement.movement_date)).filter(
            StockMovement.item_id == item_id,
            StockMovement.movement_date < day,
        ).scalar()

        seed = item.beginning or 0

        if first is None:
            # No history before this date: nothing to roll, fall back to the opening balance
            if seed == 0:
                return None
            created = self._new_beginning(item_id, day, seed, SEED_BEGINNING_NOTE)
            self.db.add(created)
            self.db.flush()
            logger.info(f"Seeded beginning {seed} for item {item_id} on {day.isoformat()}")
            return created

        start = anchor if anchor is not None else first
        if (day - start).days > self.max_lookback_days:
            raise LookbackExceededError(item_id, day, start, self.max_lookback_days)

        rows = self.db.query(StockMovement).filter(
            StockMovement.item_id == item_id,
            StockMovement.movement_date >= start,
            StockMovement.movement_date < day,
        ).all()
        by_day: Dict[date, List[StockMovement]] = defaultdict(list)
        for m in rows:
            by_day[m.movement_date].append(m)

        pending: List[StockMovement] = []
        if anchor is None:
            # First day of history has no beginning yet
            pending.append(self._new_beginning(item_id, start, seed, SEED_BEGINNING_NOTE))

        # Days after ``start`` hold no beginning rows by construction of ``anchor``
        balance = reduce_movements(item_id, start, by_day[start], default_beginning=seed)
        current = start + timedelta(days=1)
        while current < day:
            pending.append(self._new_beginning(item_id, current, balance.remaining, AUTO_BEGINNING_NOTE))
            balance = reduce_movements(
                item_id, current, by_day.get(current, []), default_beginning=balance.remaining
            )
            current += timedelta(days=1)

        created = self._new_beginning(item_id, day, balance.remaining, AUTO_BEGINNING_NOTE)
        pending.append(created)

        self.db.add_all(pending)
        self.db.flush()

        if len(pending) > 1:
            logger.info(
                f"Rolled item {item_id} forward from {start.isoformat()} to {day.isoformat()} "
                f"({len(pending)} beginning movements)"
            )
        else:
            logger.debug(
                f"Beginning {created.quantity} for item {item_id} on {day.isoformat()} "
                f"carried from {(day - timedelta(days=1)).isoformat()}"
            )
        return created

    @staticmethod
    def _new_beginning(item_id: int, day: date, quantity: int, note: str) -> StockMovement:
        return StockMovement(
            item_id=item_id,
            user_id=None,
            kind=MovementKind.BEGINNING.value,
            quantity=quantity,
            movement_date=day,
            notes=note,
            reason=AUTO_BEGINNING_REASON,
        )
