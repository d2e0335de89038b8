"""Domain enums and constants shared by services and API schemas."""

from .enums import (
    CORRECT_ANSWER,
    SUCCESS_PAYMENT_STATUSES,
    VALID_SYSTEM_STEPS,
    AnswerLetter,
    CouponType,
    PackageType,
    PaymentStatus,
    RatingAction,
)

__all__ = [
    "CORRECT_ANSWER",
    "SUCCESS_PAYMENT_STATUSES",
    "VALID_SYSTEM_STEPS",
    "AnswerLetter",
    "CouponType",
    "PackageType",
    "PaymentStatus",
    "RatingAction",
]
