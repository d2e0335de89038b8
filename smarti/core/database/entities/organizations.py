"""
Organization entity models.

Schools and other organizations distribute coupons per school year.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, NaiveDateTime, new_id, utc_now_naive


class OrganizationInfoBase(Base):
    """Base fields for organizations."""

    name: str
    contact_email: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    phone: Optional[str] = Field(default=None)


class OrganizationInfo(OrganizationInfoBase, table=True):
    """Table: organization_info"""

    __tablename__ = "organization_info"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class OrganizationYearBase(Base):
    """Base fields for organization years."""

    organization_id: str = Field(index=True)
    year: int
    notes: Optional[str] = Field(default=None)


class OrganizationYear(OrganizationYearBase, table=True):
    """Table: organization_years"""

    __tablename__ = "organization_years"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
