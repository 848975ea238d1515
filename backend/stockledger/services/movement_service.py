"""Movement Service - the only write path into the stock ledger.

Flow for a single movement:
1. Reject future dates and dates older than the backdating window
2. Validate kind and quantity
3. Lock the item row (SELECT ... FOR UPDATE) and check it is active
4. Roll the item forward so the date has a beginning
5. For out/spoilage, re-check available stock inside the same transaction
6. Insert the movement and update the item snapshot, commit as one unit

Every failure rolls the whole unit back, including any beginnings the
roll-forward synthesized along the way. Store-level lock/serialization
failures and constraint violations from a concurrent delete surface as
``ConflictError``; nothing is retried here.

Actors come from the identity provider. The first write by an actor the
local ``users`` mirror has not seen adds a placeholder row for it, so the
audit columns always point at a real row.
"""

import logging
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Dict, Iterator, List, Mapping, Optional, Union

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from stockledger.core.clock import Clock, SystemClock
from stockledger.core.config import settings
from stockledger.core.exceptions import (
    ConflictError,
    InsufficientStockError,
    ItemNotFoundError,
    StockValidationError,
)
from stockledger.core.rbac import UserRole
from stockledger.models.item import InventoryItem
from stockledger.models.movement import DEFAULT_REASONS, MovementKind, StockMovement
from stockledger.models.user import User
from stockledger.services.balance_calculator import BalanceCalculator, DailyBalance
from stockledger.services.roll_forward_service import RollForwardEngine

logger = logging.getLogger(__name__)

# Field name -> kind for the replace-a-day path, in insertion order
DAY_FIELDS = {
    "beginning": MovementKind.BEGINNING,
    "in": MovementKind.IN,
    "out": MovementKind.OUT,
    "spoilage": MovementKind.SPOILAGE,
}

DAY_NOTE_TEMPLATES = {
    MovementKind.BEGINNING: "Beginning balance for {day}",
    MovementKind.IN: "Stock in for {day}",
    MovementKind.OUT: "Stock out for {day}",
    MovementKind.SPOILAGE: "Spoilage for {day}",
}

RESET_NOTE = "Inventory reset to 0"
RESET_REASON = "Reset inventory"


class MovementService:
    """Validates and records stock movements and keeps item snapshots in step."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        backdate_window_days: Optional[int] = None,
        max_lookback_days: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.backdate_window_days = (
            settings.backdate_window_days if backdate_window_days is None else backdate_window_days
        )
        self.calculator = BalanceCalculator(db)
        self.roll_forward = RollForwardEngine(db, max_lookback_days=max_lookback_days)

    # ===== SINGLE MOVEMENT =====

    def record_movement(
        self,
        item_id: int,
        actor_id: Optional[int],
        kind: Union[MovementKind, str],
        quantity: int,
        day: date,
        note: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> int:
        """Validate and persist one movement. Returns the new movement id.

        Raises:
            StockValidationError: bad date, kind, quantity, or inactive item.
            ItemNotFoundError: unknown item.
            InsufficientStockError: out/spoilage larger than the stock on ``day``.
            ConflictError: the store could not serialize the transaction.
        """
        today = self.clock.today()
        self._check_not_future(day, today)
        earliest = today - timedelta(days=self.backdate_window_days)
        if day < earliest:
            raise StockValidationError(
                f"Movement date cannot be more than {self.backdate_window_days} days in the past"
            )
        movement_kind = self._parse_kind(kind)
        qty = self._check_quantity(movement_kind, quantity)

        with self._unit_of_work(f"record {movement_kind.value} for item {item_id}"):
            item = self._lock_active_item(item_id)
            self._ensure_actor(actor_id)

            if movement_kind != MovementKind.BEGINNING:
                self.roll_forward.ensure_beginning(item_id, day)

            if movement_kind in (MovementKind.OUT, MovementKind.SPOILAGE):
                available = self.calculator.compute_balance(item_id, day).remaining
                if qty > available:
                    logger.warning(
                        f"Rejected {movement_kind.value} of {qty} for item {item_id} on "
                        f"{day.isoformat()}: only {available} available"
                    )
                    raise InsufficientStockError(item_id, available, qty, day=day, unit=item.unit)

            movement = StockMovement(
                item_id=item_id,
                user_id=actor_id,
                kind=movement_kind.value,
                quantity=qty,
                movement_date=day,
                notes=note or "",
                reason=reason or DEFAULT_REASONS[movement_kind],
            )
            self.db.add(movement)
            self._apply_to_snapshot(item, movement_kind, qty)
            item.updated_by = actor_id
            self.db.flush()
            movement_id = movement.id

        logger.info(
            f"Recorded {movement_kind.value} of {qty} {item.unit} for item {item_id} "
            f"on {day.isoformat()} (movement {movement_id}, actor {actor_id})"
        )
        return movement_id

    # ===== REPLACE A WHOLE DAY =====

    def replace_day_movements(
        self,
        item_id: int,
        day: date,
        fields: Mapping[str, Optional[int]],
        actor_id: Optional[int],
        note: Optional[str] = None,
    ) -> DailyBalance:
        """Overwrite every movement of ``item_id`` on ``day``.

        All rows for the date are deleted, including any beginning. A supplied
        beginning (zero allowed) is re-inserted as-is; otherwise the beginning
        is rolled forward from the previous day. Zero in/out/spoilage values
        are skipped. No backdating bound applies here.

        Raises:
            StockValidationError: future date, unknown field or negative value.
            ItemNotFoundError: unknown item.
            InsufficientStockError: out + spoilage exceed beginning + in.
        """
        self._check_not_future(day, self.clock.today())
        values = self._check_day_fields(fields)

        with self._unit_of_work(f"replace {day.isoformat()} for item {item_id}"):
            item = self._lock_active_item(item_id)
            self._ensure_actor(actor_id)

            deleted = self.db.query(StockMovement).filter(
                StockMovement.item_id == item_id,
                StockMovement.movement_date == day,
            ).delete(synchronize_session="fetch")

            created: List[StockMovement] = []
            for field, kind in DAY_FIELDS.items():
                qty = values.get(field)
                if qty is None:
                    continue
                if kind != MovementKind.BEGINNING and qty == 0:
                    continue
                created.append(StockMovement(
                    item_id=item_id,
                    user_id=actor_id,
                    kind=kind.value,
                    quantity=qty,
                    movement_date=day,
                    notes=note or DAY_NOTE_TEMPLATES[kind].format(day=day.isoformat()),
                    reason=DEFAULT_REASONS[kind],
                ))

            if values.get("beginning") is None:
                self.roll_forward.ensure_beginning(item_id, day)
            self.db.add_all(created)
            self.db.flush()

            balance = self.calculator.compute_balance(item_id, day)
            needed = balance.out_quantity + balance.spoilage
            if needed > balance.total_inventory:
                logger.warning(
                    f"Rejected replace of {day.isoformat()} for item {item_id}: "
                    f"out+spoilage {needed} exceeds {balance.total_inventory}"
                )
                raise InsufficientStockError(
                    item_id, balance.total_inventory, needed, day=day, unit=item.unit
                )

            if day == self.clock.today():
                item.apply_snapshot(
                    balance.beginning,
                    balance.in_quantity,
                    balance.out_quantity,
                    balance.spoilage,
                    balance.remaining,
                )
            item.updated_by = actor_id

        logger.info(
            f"Replaced {day.isoformat()} for item {item_id}: removed {deleted}, "
            f"inserted {len(created)} movements (actor {actor_id})"
        )
        return balance

    # ===== ADMINISTRATIVE =====

    def reconcile_snapshot(self, item_id: int, actor_id: Optional[int] = None) -> DailyBalance:
        """Recompute today's balance from the ledger and overwrite the item snapshot.

        Idempotent; used to recover from snapshot drift.
        """
        today = self.clock.today()
        with self._unit_of_work(f"reconcile item {item_id}"):
            item = self._lock_item(item_id)
            self._ensure_actor(actor_id)
            self.roll_forward.ensure_beginning(item_id, today)
            balance = self.calculator.compute_balance(item_id, today)

            drift = item.remaining != balance.remaining or item.total_inventory != balance.total_inventory
            item.apply_snapshot(
                balance.beginning,
                balance.in_quantity,
                balance.out_quantity,
                balance.spoilage,
                balance.remaining,
            )
            if actor_id is not None:
                item.updated_by = actor_id

        if drift:
            logger.warning(f"Item {item_id} snapshot drifted from ledger; reconciled to {balance.remaining}")
        else:
            logger.info(f"Item {item_id} snapshot already matched ledger")
        return balance

    def reset_item(self, item_id: int, actor_id: Optional[int]) -> int:
        """Record a zero beginning for today and zero the snapshot. Returns the movement id."""
        today = self.clock.today()
        with self._unit_of_work(f"reset item {item_id}"):
            item = self._lock_active_item(item_id)
            self._ensure_actor(actor_id)
            movement = StockMovement(
                item_id=item_id,
                user_id=actor_id,
                kind=MovementKind.BEGINNING.value,
                quantity=0,
                movement_date=today,
                notes=RESET_NOTE,
                reason=RESET_REASON,
            )
            self.db.add(movement)
            item.apply_snapshot(0, 0, 0, 0, 0)
            item.updated_by = actor_id
            self.db.flush()
            movement_id = movement.id

        logger.info(f"Reset item {item_id} to 0 on {today.isoformat()} (actor {actor_id})")
        return movement_id

    # ===== HELPERS =====

    @contextmanager
    def _unit_of_work(self, action: str) -> Iterator[None]:
        """Commit on success, roll back on any failure."""
        try:
            yield
            self.db.commit()
        except (OperationalError, IntegrityError) as e:
            self.db.rollback()
            logger.warning(f"Store conflict while trying to {action}: {e}")
            raise ConflictError(f"Concurrent update while trying to {action}, please retry") from e
        except Exception:
            self.db.rollback()
            raise

    def _lock_item(self, item_id: int) -> InventoryItem:
        item = self.db.query(InventoryItem).filter(
            InventoryItem.id == item_id
        ).with_for_update().first()
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def _lock_active_item(self, item_id: int) -> InventoryItem:
        item = self._lock_item(item_id)
        if not item.is_active:
            raise StockValidationError(f"Inventory item {item_id} is inactive")
        return item

    def _ensure_actor(self, actor_id: Optional[int]) -> None:
        """Add a placeholder mirror row for an actor seen for the first time.

        The row carries no elevated role; authorization always comes from the
        token, never from the mirror.
        """
        if actor_id is None or self.db.get(User, actor_id) is not None:
            return
        self.db.add(User(id=actor_id, username=f"actor-{actor_id}", role=UserRole.OPERATOR))
        self.db.flush()
        logger.info(f"Registered actor {actor_id} in the local mirror")

    @staticmethod
    def _check_not_future(day: date, today: date) -> None:
        if day > today:
            raise StockValidationError("Movement date cannot be in the future")

    @staticmethod
    def _parse_kind(kind: Union[MovementKind, str]) -> MovementKind:
        try:
            return MovementKind(kind)
        except ValueError:
            valid = ", ".join(k.value for k in MovementKind)
            raise StockValidationError(f"Invalid movement kind '{kind}'. Must be one of: {valid}")

    @staticmethod
    def _check_quantity(kind: MovementKind, quantity: int) -> int:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise StockValidationError("Quantity must be a whole number")
        if quantity < 0:
            raise StockValidationError("Quantity cannot be negative")
        if quantity == 0 and kind != MovementKind.BEGINNING:
            raise StockValidationError("Quantity must be a positive number")
        return quantity

    @staticmethod
    def _check_day_fields(fields: Mapping[str, Optional[int]]) -> Dict[str, Optional[int]]:
        unknown = set(fields) - set(DAY_FIELDS)
        if unknown:
            raise StockValidationError(f"Unknown day fields: {', '.join(sorted(unknown))}")
        values: Dict[str, Optional[int]] = {}
        for field, qty in fields.items():
            if qty is None:
                values[field] = None
                continue
            if isinstance(qty, bool) or not isinstance(qty, int):
                raise StockValidationError(f"'{field}' must be a whole number")
            if qty < 0:
                raise StockValidationError(f"'{field}' cannot be negative")
            values[field] = qty
        return values

    @staticmethod
    def _apply_to_snapshot(item: InventoryItem, kind: MovementKind, qty: int) -> None:
        """Incremental snapshot update mirroring the day formula."""
        if kind == MovementKind.IN:
            item.in_quantity += qty
            item.total_inventory += qty
            item.remaining += qty
        elif kind == MovementKind.OUT:
            item.out_quantity += qty
            item.remaining = max(0, item.remaining - qty)
        elif kind == MovementKind.SPOILAGE:
            item.spoilage += qty
            item.remaining = max(0, item.remaining - qty)
        elif kind == MovementKind.ADJUSTMENT:
            item.remaining = qty
        elif kind == MovementKind.BEGINNING:
            item.beginning = qty
            item.total_inventory = qty + item.in_quantity
            item.remaining = max(0, item.total_inventory - item.out_quantity - item.spoilage)
