"""
System configuration and client feedback entity models.

- SystemConfig: per system step settings (exam date, store app versions)
- Feedback: feedback submitted from the web app
- AppRatingLog: outcome of the in-app rating prompt
- PushNotificationToken: device push tokens registered by the mobile app
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, NaiveDateTime, new_id, utc_now_naive


class SystemConfigBase(Base):
    """Base fields for system configuration."""

    system_step: int = Field(index=True)
    link_whatsapp_group: Optional[str] = Field(default=None)
    exam_date: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)
    num_question: Optional[int] = Field(default=None)
    ios_version: Optional[str] = Field(default=None, description="Live iOS app version, null in test mode")
    android_version: Optional[str] = Field(default=None, description="Live Android app version, null in test mode")


class SystemConfig(SystemConfigBase, table=True):
    """Table: system_config"""

    __tablename__ = "system_config"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
    updated_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class FeedbackBase(Base):
    """Base fields for feedbacks."""

    user_id: Optional[str] = Field(default=None, index=True)
    title: Optional[str] = Field(default=None)
    description: str = Field(default="")
    screen_name: Optional[str] = Field(default=None, description="Screen the feedback was sent from")
    identify_number: Optional[str] = Field(default=None, description="Question or lesson the feedback refers to")
    rate: Optional[str] = Field(default=None, description="terrible, bad, ok, good or great")
    status: str = Field(default="new")


class Feedback(FeedbackBase, table=True):
    """Table: feedbacks"""

    __tablename__ = "feedbacks"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class AppRatingLogBase(Base):
    """Base fields for app rating logs."""

    user_id: Optional[str] = Field(default=None)
    rating: int = Field(ge=0, le=5)
    feedback: Optional[str] = Field(default=None)
    device_id: Optional[str] = Field(default=None)
    device_type: Optional[str] = Field(default=None)
    device_model: Optional[str] = Field(default=None)
    app_version: Optional[str] = Field(default=None)
    action: str = Field(description="rated, store_review or dismissed")


class AppRatingLog(AppRatingLogBase, table=True):
    """Table: app_rating_logs"""

    __tablename__ = "app_rating_logs"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class PushNotificationTokenBase(Base):
    """Base fields for push tokens."""

    user_id: Optional[str] = Field(default=None, index=True)
    token: str = Field(index=True, unique=True)
    device_id: str
    device_type: str = Field(description="ios, android or web")
    device_name: Optional[str] = Field(default=None)
    device_model: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)


class PushNotificationToken(PushNotificationTokenBase, table=True):
    """Table: push_notification_tokens"""

    __tablename__ = "push_notification_tokens"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
    updated_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
