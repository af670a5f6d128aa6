"""
Declarative base shared by every Bakery Control table.

Each table gets an integer id and UTC created_at/updated_at stamps. The
column-copy helpers are how repositories apply detached objects onto the
rows they load.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_base

from bakery_control.utils.datetime_utils import utc_now

Base = declarative_base()

# Columns that callers may never overwrite through update_from_dict()
PROTECTED_COLUMNS = ("id", "created_at", "updated_at")


class BaseModel(Base):
    """Abstract model: id plus creation and modification timestamps."""

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model instance to a JSON-friendly dictionary.

        Datetimes and dates become ISO strings; Decimals become strings so
        no precision is lost.
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = str(value)
            result[column.name] = value
        return result

    def update_from_dict(self, data: Dict[str, Any], exclude: Iterable[str] = ()) -> None:
        """Set the columns named in ``data``; id and timestamps are never touched."""
        skipped = set(PROTECTED_COLUMNS) | set(exclude)
        for column in self.__table__.columns:
            if column.name in data and column.name not in skipped:
                setattr(self, column.name, data[column.name])

    def copy_columns_from(self, other: "BaseModel", exclude: Iterable[str] = ()) -> None:
        """Copy every column value of ``other`` (same model) onto this instance."""
        skipped = set(PROTECTED_COLUMNS) | set(exclude)
        for column in self.__table__.columns:
            if column.name not in skipped:
                setattr(self, column.name, getattr(other, column.name))

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        attrs = []

        if getattr(self, "id", None) is not None:
            attrs.append(f"id={self.id}")
        if getattr(self, "name", None) is not None:
            attrs.append(f"name='{self.name}'")

        return f"{class_name}({', '.join(attrs)})"
