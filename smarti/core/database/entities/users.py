"""
User entity models.

This module contains the database entities describing a learner:
- User: identity as provided by the auth provider, current system step and
  the organizations the user manages
- UserSettings: per system step preferences, selected category and saved coupon
- UserSystemStats: per system step experience and genius score
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Field

from ..base import Base, NaiveDateTime, new_id, utc_now_naive

DEFAULT_AVATAR = "/smarti_avatar.png"


class UserBase(Base):
    """Base fields for users."""

    name: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Primary email address")
    image_src: Optional[str] = Field(default=None, description="Profile image URL")
    system_step: Optional[int] = Field(default=None, description="Onboarding system step (1-3)")
    organization_year_id: Optional[str] = Field(default=None, description="Organization year the user joined through")
    managed_organization: List[str] = Field(
        default_factory=list, sa_type=JSON, description="Organization IDs this user manages"
    )


class User(UserBase, table=True):
    """Learner account keyed by the auth provider's user id.

    Table: users
    """

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, system_step={self.system_step})"


class UserSettingsBase(Base):
    """Base fields for user settings."""

    user_id: str = Field(index=True, description="Owning user")
    system_step: int = Field(default=1, description="System step these settings belong to")
    lesson_category_id: Optional[str] = Field(default=None, description="Currently selected lesson category")
    lesson_clock: bool = Field(default=True, description="Show the lesson timer")
    quiz_clock: bool = Field(default=True, description="Show the quiz timer")
    immediate_result: bool = Field(default=False, description="Reveal the answer right after each question")
    grade_class: Optional[str] = Field(default=None, description="Grade and class")
    gender: Optional[str] = Field(default=None)
    avatar: Optional[str] = Field(default=DEFAULT_AVATAR)
    saved_coupon_id: Optional[str] = Field(default=None, description="Coupon saved for the next checkout")


class UserSettings(UserSettingsBase, table=True):
    """Per system step user preferences.

    Table: user_settings
    """

    __tablename__ = "user_settings"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"UserSettings(user_id={self.user_id}, system_step={self.system_step})"


class UserSystemStatsBase(Base):
    """Base fields for per step statistics."""

    user_id: str = Field(index=True, description="Owning user")
    system_step: int = Field(description="System step the stats are counted for")
    experience: int = Field(default=0, description="Experience points")
    genius_score: int = Field(default=0, description="Genius score")


class UserSystemStats(UserSystemStatsBase, table=True):
    """Experience and genius score for one user in one system step.

    Table: user_system_stats
    """

    __tablename__ = "user_system_stats"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
    updated_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return (
            f"UserSystemStats(user_id={self.user_id}, step={self.system_step}, "
            f"experience={self.experience}, genius_score={self.genius_score})"
        )
