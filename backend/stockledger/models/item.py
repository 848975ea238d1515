"""Inventory item model with its denormalized current-balance snapshot."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockledger.db.base import Base, TimestampMixin


class InventoryItem(Base, TimestampMixin):
    """A stocked item.

    Catalog fields (name, unit, category, is_active) are owned by the catalog
    service. The snapshot columns are a cache of the balance as of the last
    accepted write; the movement ledger is the source of truth.
    """

    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)  # pcs, kg, L, tray
    category: Mapped[str] = mapped_column(String(100), default="Uncategorized", nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Snapshot
    beginning: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    in_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    out_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    spoilage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_inventory: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remaining: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def apply_snapshot(self, beginning: int, in_qty: int, out_qty: int, spoilage: int, remaining: int) -> None:
        """Overwrite every snapshot column at once."""
        self.beginning = beginning
        self.in_quantity = in_qty
        self.out_quantity = out_qty
        self.spoilage = spoilage
        self.total_inventory = beginning + in_qty
        self.remaining = remaining


# Forward references
from stockledger.models.movement import StockMovement
