"""Daily inventory schemas."""

from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from stockledger.models.movement import MovementKind


class MovementCreate(BaseModel):
    """Record one stock movement."""

    item_id: int
    kind: MovementKind
    quantity: int = Field(..., ge=0)
    date: Optional[dt.date] = None  # defaults to today
    notes: Optional[str] = Field(None, max_length=2000)
    reason: Optional[str] = Field(None, max_length=100)


class MovementCreated(BaseModel):
    id: int
    item_id: int
    kind: MovementKind
    quantity: int
    date: dt.date


class DayReplaceRequest(BaseModel):
    """Overwrite every movement of one item on one date.

    Omitted fields are not written; an omitted ``beginning`` is carried over
    from the previous day.
    """

    model_config = ConfigDict(populate_by_name=True)

    beginning: Optional[int] = Field(None, ge=0)
    in_quantity: Optional[int] = Field(None, ge=0, alias="in")
    out_quantity: Optional[int] = Field(None, ge=0, alias="out")
    spoilage: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)

    def day_fields(self) -> Dict[str, Optional[int]]:
        return {
            "beginning": self.beginning,
            "in": self.in_quantity,
            "out": self.out_quantity,
            "spoilage": self.spoilage,
        }


class DailyBalanceResponse(BaseModel):
    """One item's computed figures for one date."""

    item_id: int
    date: dt.date
    beginning: int
    in_quantity: int
    out_quantity: int
    spoilage: int
    total_inventory: int
    remaining: int
    movement_count: int
    has_beginning: bool
    adjusted: bool
    name: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None
    low_stock: Optional[bool] = None

    model_config = {"from_attributes": True}


class DayTotals(BaseModel):
    beginning: int = 0
    in_quantity: int = 0
    out_quantity: int = 0
    spoilage: int = 0
    total_inventory: int = 0
    remaining: int = 0


class CategoryGroup(BaseModel):
    category: str
    items: List[DailyBalanceResponse]
    totals: DayTotals


class DailySheetResponse(BaseModel):
    """All active items for one date, grouped by category."""

    date: dt.date
    categories: List[CategoryGroup]
    totals: DayTotals
    item_count: int
    low_stock_count: int


class ReceivedItem(BaseModel):
    item_id: int
    name: str
    unit: str
    quantity: int


class DashboardResponse(BaseModel):
    date: dt.date
    total_items: int
    total_remaining: int
    low_stock_count: int
    low_stock_items: List[DailyBalanceResponse]
    movement_totals: Dict[str, int]
    items_received: List[ReceivedItem]


class StockMovementResponse(BaseModel):
    """Stock movement response schema."""

    id: int
    item_id: int
    user_id: Optional[int] = None
    kind: MovementKind
    quantity: int
    movement_date: dt.date
    notes: Optional[str] = None
    reason: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class ItemSnapshotResponse(BaseModel):
    """Item with its cached current-balance snapshot."""

    id: int
    name: str
    unit: str
    category: str
    is_active: bool
    beginning: int
    in_quantity: int
    out_quantity: int
    spoilage: int
    total_inventory: int
    remaining: int
    updated_by: Optional[int] = None

    model_config = {"from_attributes": True}


class SystemDateResponse(BaseModel):
    date: dt.date
    timezone: str
    now: dt.datetime
