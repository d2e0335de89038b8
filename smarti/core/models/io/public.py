"""Models for endpoints used by the web and mobile clients."""

from __future__ import annotations

from typing import List, Literal, Optional

from .common import CamelModel


class FeedbackSubmit(CamelModel):
    title: str
    description: str
    rating: Optional[Literal["terrible", "bad", "ok", "good", "great"]] = None
    screen_name: Optional[str] = None
    identifier: Optional[str] = None


class PublicSystemConfig(CamelModel):
    """Store versions of the mobile app; null versions mean test mode."""

    ios_version: Optional[str] = None
    android_version: Optional[str] = None
    system_step: int


class FeatureFlags(CamelModel):
    pwa_enabled: bool


class SystemStepInfo(CamelModel):
    system_step: int
    label: str
    product_year: str


class SubscriptionStatus(CamelModel):
    product_types: List[str]
    is_pro: bool
    system_step: int
