"""
Admin resource writes.

The admin panel posts raw camelCase JSON for every table. Payloads are
normalized (dates coerced, keys snake_cased) and validated against the
entity's base model before they touch the session. Coupons, plans and the
system configuration carry a few extra rules of their own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from numbers import Number
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import ValidationError
from pydantic.alias_generators import to_snake
from sqlmodel import SQLModel

from smarti.core.database.base import Base, new_id, utc_now_naive
from smarti.core.database.entities import (
    AppRatingLog,
    Coupon,
    Feedback,
    Lesson,
    LessonCategory,
    LessonQuestionGroup,
    OnlineLesson,
    OrganizationInfo,
    OrganizationYear,
    Plan,
    Product,
    PushNotificationToken,
    Question,
    Subscription,
    SystemConfig,
    User,
    UserLessonResult,
    UserSettings,
    UserWrongQuestion,
)
from smarti.core.database.entities.billing import CouponBase, PlanBase, ProductBase, SubscriptionBase
from smarti.core.database.entities.lessons import (
    LessonBase,
    LessonCategoryBase,
    LessonQuestionGroupBase,
    OnlineLessonBase,
    QuestionBase,
)
from smarti.core.database.entities.organizations import OrganizationInfoBase, OrganizationYearBase
from smarti.core.database.entities.results import UserLessonResultBase, UserWrongQuestionBase
from smarti.core.database.entities.system import (
    AppRatingLogBase,
    FeedbackBase,
    PushNotificationTokenBase,
    SystemConfigBase,
)
from smarti.core.database.entities.users import UserBase, UserSettingsBase
from smarti.core.errors import MalformedPayloadError
from smarti.core.models.io.common import to_wire

from .sanitize import sanitize_dates, to_snake_case_payload

TIMESTAMP_FIELDS = ("created_at", "updated_at")
COUPON_TYPE_WIRE_KEY = "couponType"


@dataclass(frozen=True)
class AdminResource:
    """A table exposed through the admin CRUD API.

    Attributes:
        name: Path segment under ``/api``, as the admin panel names it
        model: Table model rows are read from and written to
        base: Non-table model holding the writable fields
    """

    name: str
    model: Type[SQLModel]
    base: Type[Base]


GENERIC_RESOURCES: List[AdminResource] = [
    AdminResource("users", User, UserBase),
    AdminResource("userSettings", UserSettings, UserSettingsBase),
    AdminResource("lessons", Lesson, LessonBase),
    AdminResource("lessonCategory", LessonCategory, LessonCategoryBase),
    AdminResource("lessonQuestionGroups", LessonQuestionGroup, LessonQuestionGroupBase),
    AdminResource("questions", Question, QuestionBase),
    AdminResource("onlineLessons", OnlineLesson, OnlineLessonBase),
    AdminResource("products", Product, ProductBase),
    AdminResource("subscriptions", Subscription, SubscriptionBase),
    AdminResource("organizationInfo", OrganizationInfo, OrganizationInfoBase),
    AdminResource("organizationYears", OrganizationYear, OrganizationYearBase),
    AdminResource("feedbacks", Feedback, FeedbackBase),
    AdminResource("userLessonResults", UserLessonResult, UserLessonResultBase),
    AdminResource("userWrongQuestions", UserWrongQuestion, UserWrongQuestionBase),
    AdminResource("pushNotificationTokens", PushNotificationToken, PushNotificationTokenBase),
    AdminResource("appRatings", AppRatingLog, AppRatingLogBase),
]

COUPONS = AdminResource("coupons", Coupon, CouponBase)
PLANS = AdminResource("plans", Plan, PlanBase)
SYSTEM_CONFIG = AdminResource("systemConfig", SystemConfig, SystemConfigBase)


def _normalize(payload: Mapping[str, Any]) -> Dict[str, Any]:
    data = to_snake_case_payload(sanitize_dates(payload))
    data.pop("id", None)
    return data


def _writable(base: Type[Base], data: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key in base.model_fields}


def _timestamps(model: Type[SQLModel], data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        key: data[key] for key in TIMESTAMP_FIELDS if key in model.model_fields and isinstance(data.get(key), datetime)
    }


def _validate(base: Type[Base], values: Dict[str, Any]) -> Base:
    try:
        return base.model_validate(values)
    except ValidationError as exc:
        details = [{"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]} for err in exc.errors()]
        raise MalformedPayloadError("Invalid payload", details=details) from exc


def build_entity(resource: AdminResource, payload: Mapping[str, Any]) -> SQLModel:
    """Create a new, unsaved row from an admin payload.

    The row always gets a fresh UUID; a client supplied ``id`` is ignored.
    Unknown keys are dropped.

    Raises:
        MalformedPayloadError: A field has the wrong type or a required field is missing
    """
    data = _normalize(payload)
    validated = _validate(resource.base, _writable(resource.base, data))
    return resource.model(**validated.model_dump(), **_timestamps(resource.model, data), id=new_id())


def apply_update(resource: AdminResource, entity: SQLModel, payload: Mapping[str, Any]) -> SQLModel:
    """Apply an admin payload to an existing row in place."""
    data = _normalize(payload)
    changes = _writable(resource.base, data)
    current = entity.model_dump()
    merged = {key: current[key] for key in resource.base.model_fields if key in current}
    merged.update(changes)
    validated = _validate(resource.base, merged)
    for key in changes:
        setattr(entity, key, getattr(validated, key))
    for key, value in _timestamps(resource.model, data).items():
        setattr(entity, key, value)
    if "updated_at" in resource.model.model_fields and "updated_at" not in data:
        entity.updated_at = utc_now_naive()
    return entity


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def coupon_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Map the wire ``couponType`` key to the ``type`` column."""
    out = dict(payload)
    if COUPON_TYPE_WIRE_KEY in out:
        out["type"] = out.pop(COUPON_TYPE_WIRE_KEY)
    return out


def validate_new_coupon(payload: Mapping[str, Any]) -> None:
    """Check a coupon creation payload, failing on the first missing field.

    Dates are checked after sanitizing, so an unparseable ``validFrom`` or
    ``validUntil`` counts as missing. ``value`` and ``maxUses`` must be JSON
    numbers.

    Raises:
        MalformedPayloadError: With the message of the first failed check
    """
    data = sanitize_dates(payload)
    code = data.get("code")
    if not isinstance(code, str) or not code.strip():
        raise MalformedPayloadError("Code is required")
    if not data.get("planId"):
        raise MalformedPayloadError("Plan ID is required")
    if not data.get("organizationYearId"):
        raise MalformedPayloadError("Organization Year ID is required")
    value = data.get("value")
    if not _is_number(value) or value == 0:
        raise MalformedPayloadError("Value is required and must be a number")
    if not data.get("validFrom"):
        raise MalformedPayloadError("Valid From date is required")
    if not data.get("validUntil"):
        raise MalformedPayloadError("Valid Until date is required")
    if not _is_number(data.get("maxUses")):
        raise MalformedPayloadError("Max Uses is required and must be a number")


def coupon_to_wire(coupon: Optional[Coupon]) -> Optional[Dict[str, Any]]:
    wire = to_wire(coupon)
    if wire is not None:
        wire[COUPON_TYPE_WIRE_KEY] = wire.pop("type")
    return wire


def plan_payload(payload: Mapping[str, Any], creating: bool) -> Dict[str, Any]:
    """Parse a stringified ``displayData`` and default ``isActive`` on create.

    Raises:
        MalformedPayloadError: ``displayData`` is a string but not valid JSON
    """
    out = dict(payload)
    display_data = out.get("displayData")
    if isinstance(display_data, str):
        try:
            out["displayData"] = json.loads(display_data) if display_data.strip() else None
        except json.JSONDecodeError as exc:
            raise MalformedPayloadError("Invalid JSON in displayData") from exc
    if creating and out.get("isActive") is None:
        out["isActive"] = True
    return out


def validate_new_system_config(payload: Mapping[str, Any]) -> None:
    if not _is_number(payload.get("systemStep")):
        raise MalformedPayloadError("systemStep is required and must be a number")


def sort_attribute(sort: Optional[str]) -> Optional[str]:
    """Entity attribute for a react-admin ``_sort`` value."""
    return to_snake(sort) if sort else None
