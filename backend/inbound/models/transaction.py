from __future__ import annotations

"""Inbound movement (``receive`` / ``putaway``) booked against a receipt number."""

from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from ._common import ensure_utc, generate_id, normalize_operate_type, require_text, utcnow


class TransactionBase(SQLModel):
    date: Optional[str] = Field(default=None, description="Transaction date")
    time_transaction: Optional[str] = Field(default=None, description="M/D/YYYY hh:mm:ss")
    receipt_no: str = Field(index=True, description="Receipt number (case-insensitive)")
    sku: str = Field(description="SKU")
    operate_type: str = Field(default="receive", description="receive | putaway")
    qty: int = Field(default=0, ge=0)
    operator: Optional[str] = Field(default=None)

    @field_validator("operate_type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        return normalize_operate_type(v)


class Transaction(TransactionBase, table=True):
    __tablename__ = "transactions"

    id: str = Field(default_factory=generate_id, primary_key=True, max_length=32)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class TransactionCreate(TransactionBase):
    @field_validator("receipt_no", "sku", mode="before")
    @classmethod
    def _not_blank(cls, v, info):
        return require_text(v, info.field_name)


class TransactionRead(TransactionBase):
    id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v):
        return ensure_utc(v)


class TransactionUpdate(SQLModel):
    date: Optional[str] = None
    time_transaction: Optional[str] = None
    receipt_no: Optional[str] = None
    sku: Optional[str] = None
    operate_type: Optional[str] = None
    qty: Optional[int] = Field(default=None, ge=0)
    operator: Optional[str] = None

    @field_validator("operate_type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        return None if v is None else normalize_operate_type(v)

    @field_validator("receipt_no", "sku", mode="before")
    @classmethod
    def _not_blank(cls, v, info):
        return None if v is None else require_text(v, info.field_name)
