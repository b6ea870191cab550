from __future__ import annotations

"""Inbound arrival (purchase-order receipt at the dock).

``receipt_no`` is the join key towards :class:`~inbound.models.transaction.Transaction`
but it is *not* unique and there is no foreign key: a transaction may point
to a receipt that was never registered as an arrival.
"""

from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlalchemy import Text
from sqlmodel import Field, SQLModel

from ._common import ensure_utc, generate_id, require_text, utcnow


class ArrivalBase(SQLModel):
    date: Optional[str] = Field(default=None, description="Arrival date (YYYY-MM-DD)")
    arrival_time: Optional[str] = Field(default=None, description="M/D/YYYY hh:mm:ss")
    brand: str = Field(default="", description="Brand")
    receipt_no: str = Field(index=True, description="Receipt number (join key)")
    po_no: str = Field(index=True, description="Purchase order number")
    po_qty: int = Field(default=0, ge=0, description="Ordered quantity")
    operator: Optional[str] = Field(default=None)
    note: Optional[str] = Field(default=None, sa_type=Text)


class Arrival(ArrivalBase, table=True):
    __tablename__ = "arrivals"

    id: str = Field(default_factory=generate_id, primary_key=True, max_length=32)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class ArrivalCreate(ArrivalBase):
    @field_validator("receipt_no", "po_no", mode="before")
    @classmethod
    def _not_blank(cls, v, info):
        return require_text(v, info.field_name)


class ArrivalRead(ArrivalBase):
    id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v):
        return ensure_utc(v)


class ArrivalUpdate(SQLModel):
    date: Optional[str] = None
    arrival_time: Optional[str] = None
    brand: Optional[str] = None
    receipt_no: Optional[str] = None
    po_no: Optional[str] = None
    po_qty: Optional[int] = Field(default=None, ge=0)
    operator: Optional[str] = None
    note: Optional[str] = None

    @field_validator("receipt_no", "po_no", mode="before")
    @classmethod
    def _not_blank(cls, v, info):
        return None if v is None else require_text(v, info.field_name)
