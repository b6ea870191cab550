from __future__ import annotations

"""Committed value-added-service line (one row per brand/SKU of a finished task)."""

from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from ._common import ensure_utc, generate_id, require_text, utcnow


class VasEntryBase(SQLModel):
    date: Optional[str] = Field(default=None, description="Work date")
    start_time: Optional[str] = Field(default=None)
    end_time: Optional[str] = Field(default=None)
    duration: Optional[str] = Field(default=None, description="HH:MM:SS")
    brand: Optional[str] = Field(default=None)
    sku: Optional[str] = Field(default=None)
    vas_type: Optional[str] = Field(default=None, description="Free-text VAS category")
    qty: int = Field(default=0, ge=0)
    operator: Optional[str] = Field(default=None)


class VasEntry(VasEntryBase, table=True):
    __tablename__ = "vas"

    id: str = Field(default_factory=generate_id, primary_key=True, max_length=32)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)


class VasEntryCreate(VasEntryBase):
    @field_validator("sku", mode="before")
    @classmethod
    def _not_blank(cls, v, info):
        return require_text(v, info.field_name)


class VasEntryRead(VasEntryBase):
    id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, v):
        return ensure_utc(v)


class VasEntryUpdate(SQLModel):
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[str] = None
    brand: Optional[str] = None
    sku: Optional[str] = None
    vas_type: Optional[str] = None
    qty: Optional[int] = Field(default=None, ge=0)
    operator: Optional[str] = None
