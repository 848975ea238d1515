"""Typed key-value settings store."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Optional

from sqlalchemy import Enum as SQLEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stockledger.db.base import Base, TimestampMixin

logger = logging.getLogger(__name__)


class SettingType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"


class AppSetting(Base, TimestampMixin):
    """A single setting; ``value`` is stored as text and parsed by ``value_type``."""

    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_type: Mapped[SettingType] = mapped_column(
        SQLEnum(SettingType), default=SettingType.STRING, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def parsed_value(self) -> Any:
        """Return ``value`` converted according to ``value_type``."""
        if self.value_type == SettingType.NUMBER:
            return float(self.value)
        if self.value_type == SettingType.BOOLEAN:
            return self.value.strip().lower() == "true"
        if self.value_type == SettingType.JSON:
            try:
                return json.loads(self.value)
            except ValueError:
                logger.error(f"Error parsing JSON setting: {self.key}")
                return self.value
        return self.value
