"""
Database entity models.

This package contains all database entity models organized by business domain.
Each module represents a business domain that spans related tables.

Modules:
- users: users, per step settings and per step stats
- lessons: categories, lessons, question groups, questions, online lessons
- results: lesson results and wrong questions
- billing: plans, products, coupons, subscriptions, transactions, book purchases
- organizations: organizations and their school years
- system: system configuration, feedback, app ratings, push tokens
"""

from .billing import BookPurchase, Coupon, PaymentTransaction, Plan, Product, Subscription
from .lessons import Lesson, LessonCategory, LessonQuestionGroup, OnlineLesson, Question
from .organizations import OrganizationInfo, OrganizationYear
from .results import UserLessonResult, UserWrongQuestion
from .system import AppRatingLog, Feedback, PushNotificationToken, SystemConfig
from .users import User, UserSettings, UserSystemStats

__all__ = [
    "AppRatingLog",
    "BookPurchase",
    "Coupon",
    "Feedback",
    "Lesson",
    "LessonCategory",
    "LessonQuestionGroup",
    "OnlineLesson",
    "OrganizationInfo",
    "OrganizationYear",
    "PaymentTransaction",
    "Plan",
    "Product",
    "PushNotificationToken",
    "Question",
    "Subscription",
    "SystemConfig",
    "User",
    "UserLessonResult",
    "UserSettings",
    "UserSystemStats",
    "UserWrongQuestion",
]
