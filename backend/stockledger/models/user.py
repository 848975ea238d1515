"""Actor model.

Rows are provisioned by the identity provider. The movement service adds a
placeholder row the first time an unknown actor writes.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from stockledger.core.rbac import UserRole
from stockledger.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Authenticated actor (lead or operator)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.OPERATOR,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
