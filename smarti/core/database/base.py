"""
Base database models and utilities.

This module provides the foundational database components used across
all entities in the centralized database layer using SQLModel.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlmodel import SQLModel


class Base(SQLModel):
    """Base class for all SQLModel entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


def utc_now_naive() -> datetime:
    """Get current UTC datetime as naive datetime.

    All timestamp columns store naive UTC values.

    Returns:
        Current UTC datetime without timezone info
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Generate a string UUID primary key."""
    return str(uuid.uuid4())


# Column type of every timestamp field; values are naive UTC.
NaiveDateTime = DateTime(timezone=False)
