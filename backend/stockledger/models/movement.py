"""Stock movement model: the append-only ledger."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockledger.db.base import Base


class MovementKind(str, Enum):
    """Kinds of stock movements."""

    BEGINNING = "beginning"  # Opening balance for a date (manual or rolled forward)
    IN = "in"  # Goods received
    OUT = "out"  # Issued / sold
    SPOILAGE = "spoilage"  # Waste, breakage, expiry
    ADJUSTMENT = "adjustment"  # Manual correction, overwrites remaining


# Reason labels written when the caller gives none
DEFAULT_REASONS = {
    MovementKind.BEGINNING: "Beginning balance",
    MovementKind.IN: "Stock in",
    MovementKind.OUT: "Stock out",
    MovementKind.SPOILAGE: "Spoilage",
    MovementKind.ADJUSTMENT: "Adjustment",
}


class StockMovement(Base):
    """One immutable dated quantity event against an item.

    ``id`` is the creation order. ``movement_date`` is a calendar date; the
    time of day only lives in ``created_at``.
    """

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_item_date_kind", "item_id", "movement_date", "kind"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    movement_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    item: Mapped["InventoryItem"] = relationship("InventoryItem", back_populates="movements")
    user: Mapped[Optional["User"]] = relationship("User")


# Forward references
from stockledger.models.item import InventoryItem
from stockledger.models.user import User
