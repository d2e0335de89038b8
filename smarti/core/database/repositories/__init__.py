"""
Repository layer for data access operations.

Every repository extends ``SQLModelRepository`` and adds the queries its
domain needs on top of the generic CRUD operations.
"""

from .base import AsyncBaseRepository, EntityType, QueryBuilder, SQLModelRepository
from .billing import (
    BookPurchaseRepository,
    PaymentTransactionRepository,
    PlanRepository,
    ProductRepository,
    SubscriptionRepository,
)
from .coupons import CouponRepository
from .learning import (
    LessonCategoryRepository,
    LessonQuestionGroupRepository,
    LessonRepository,
    OnlineLessonRepository,
    QuestionRepository,
    UserLessonResultRepository,
    UserWrongQuestionRepository,
)
from .organizations import OrganizationInfoRepository, OrganizationYearRepository
from .users import UserRepository, UserSettingsRepository, UserSystemStatsRepository

__all__ = [
    "AsyncBaseRepository",
    "BookPurchaseRepository",
    "CouponRepository",
    "EntityType",
    "LessonCategoryRepository",
    "LessonQuestionGroupRepository",
    "LessonRepository",
    "OnlineLessonRepository",
    "OrganizationInfoRepository",
    "OrganizationYearRepository",
    "PaymentTransactionRepository",
    "PlanRepository",
    "ProductRepository",
    "QueryBuilder",
    "QuestionRepository",
    "SQLModelRepository",
    "SubscriptionRepository",
    "UserLessonResultRepository",
    "UserRepository",
    "UserSettingsRepository",
    "UserSystemStatsRepository",
    "UserWrongQuestionRepository",
]
