"""Request and response schemas. Wire keys are camelCase."""

from .bi import BiInsights, BiLoginRequest
from .common import CamelModel, to_wire
from .learning import LessonResultSubmit, QuizData, TopUser, UserProgress, UserRanking
from .payments import CheckoutRequest, OrderPayload
from .public import FeatureFlags, FeedbackSubmit, PublicSystemConfig, SubscriptionStatus, SystemStepInfo

__all__ = [
    "BiInsights",
    "BiLoginRequest",
    "CamelModel",
    "CheckoutRequest",
    "FeatureFlags",
    "FeedbackSubmit",
    "LessonResultSubmit",
    "OrderPayload",
    "PublicSystemConfig",
    "QuizData",
    "SubscriptionStatus",
    "SystemStepInfo",
    "TopUser",
    "UserProgress",
    "UserRanking",
    "to_wire",
]
