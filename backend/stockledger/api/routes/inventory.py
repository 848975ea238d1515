"""Daily inventory routes."""

import logging
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from stockledger.core.clock import Clock, get_clock
from stockledger.core.rate_limit import limiter
from stockledger.core.rbac import CurrentUser, RequireLead
from stockledger.core.responses import paginated_response
from stockledger.db.session import DbSession
from stockledger.models.item import InventoryItem
from stockledger.models.movement import MovementKind
from stockledger.schemas.inventory import (
    DailyBalanceResponse,
    DailySheetResponse,
    DashboardResponse,
    DayReplaceRequest,
    ItemSnapshotResponse,
    MovementCreate,
    MovementCreated,
    StockMovementResponse,
    SystemDateResponse,
)
from stockledger.services.daily_inventory_service import DailyInventoryService
from stockledger.services.movement_service import MovementService

logger = logging.getLogger(__name__)

router = APIRouter()

ClockDep = Annotated[Clock, Depends(get_clock)]


@router.get("/system-date", response_model=SystemDateResponse)
@limiter.limit("60/minute")
def get_system_date(request: Request, current_user: CurrentUser, clock: ClockDep):
    """Business date used for every "today" decision."""
    return {
        "date": clock.today(),
        "timezone": getattr(clock, "tz_name", "UTC"),
        "now": clock.now(),
    }


@router.get("/daily/{day}", response_model=DailySheetResponse)
@limiter.limit("60/minute")
def get_daily_inventory(
    request: Request,
    day: date,
    db: DbSession,
    current_user: CurrentUser,
    clock: ClockDep,
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
):
    """All active items for a date, grouped by category."""
    return DailyInventoryService(db, clock).list_daily_balances(day, category=category, search=search)


@router.get("/dashboard", response_model=DashboardResponse)
@limiter.limit("60/minute")
def get_dashboard(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    clock: ClockDep,
    day: Optional[date] = Query(None),
):
    """Stock on hand, low-stock items and today's receipts."""
    return DailyInventoryService(db, clock).get_dashboard(day)


@router.get("/items/{item_id}/balance", response_model=DailyBalanceResponse)
@limiter.limit("60/minute")
def get_item_balance(
    request: Request,
    item_id: int,
    db: DbSession,
    current_user: CurrentUser,
    clock: ClockDep,
    day: Optional[date] = Query(None),
):
    """Balance of one item on one date (default today)."""
    return DailyInventoryService(db, clock).get_item_balance(item_id, day or clock.today())


@router.get("/movements")
@limiter.limit("60/minute")
def list_movements(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    item_id: Optional[int] = Query(None),
    kind: Optional[MovementKind] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """Movement audit trail, newest first (paginated)."""
    result = DailyInventoryService(db).list_movements(
        item_id=item_id,
        kind=kind.value if kind else None,
        start=start,
        end=end,
        skip=skip,
        limit=limit,
    )
    items = [StockMovementResponse.model_validate(m).model_dump(mode="json") for m in result["rows"]]
    return paginated_response(items, result["total"], skip=skip, limit=limit)


@router.post("/movements", response_model=MovementCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def record_movement(
    request: Request,
    body: MovementCreate,
    db: DbSession,
    current_user: CurrentUser,
    clock: ClockDep,
):
    """Record a stock movement (in, out, spoilage, beginning or adjustment)."""
    day = body.date or clock.today()
    movement_id = MovementService(db, clock).record_movement(
        item_id=body.item_id,
        actor_id=current_user.user_id,
        kind=body.kind,
        quantity=body.quantity,
        day=day,
        note=body.notes,
        reason=body.reason,
    )
    return {
        "id": movement_id,
        "item_id": body.item_id,
        "kind": body.kind,
        "quantity": body.quantity,
        "date": day,
    }


@router.put("/items/{item_id}/days/{day}", response_model=DailyBalanceResponse)
@limiter.limit("30/minute")
def replace_day(
    request: Request,
    item_id: int,
    day: date,
    body: DayReplaceRequest,
    db: DbSession,
    current_user: CurrentUser,
    clock: ClockDep,
):
    """Overwrite one item's movements for a date."""
    balance = MovementService(db, clock).replace_day_movements(
        item_id, day, body.day_fields(), current_user.user_id, note=body.notes
    )
    return balance.to_dict()


@router.post("/items/{item_id}/reconcile", response_model=ItemSnapshotResponse)
@limiter.limit("10/minute")
def reconcile_item(
    request: Request,
    item_id: int,
    db: DbSession,
    current_user: RequireLead,
    clock: ClockDep,
):
    """Rebuild the item's snapshot from today's ledger balance."""
    MovementService(db, clock).reconcile_snapshot(item_id, current_user.user_id)
    return db.get(InventoryItem, item_id)


@router.post("/items/{item_id}/reset", response_model=ItemSnapshotResponse)
@limiter.limit("10/minute")
def reset_item(
    request: Request,
    item_id: int,
    db: DbSession,
    current_user: RequireLead,
    clock: ClockDep,
):
    """Zero the item's stock as of today."""
    movement_id = MovementService(db, clock).reset_item(item_id, current_user.user_id)
    logger.info(f"Item {item_id} reset by {current_user.username} (movement {movement_id})")
    return db.get(InventoryItem, item_id)
