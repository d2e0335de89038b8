"""Domain enums for billing, learning and feedback models."""

from __future__ import annotations

from enum import Enum


class PaymentStatus(str, Enum):
    """
    Lifecycle status of a payment transaction.

    A transaction starts as ``created`` when the checkout redirect is issued and
    ends as ``fulfilled`` once subscriptions and book purchases exist.
    """

    created = "created"
    paid = "paid"
    book_created = "bookCreated"
    icount = "icount"
    fulfilled = "fulfilled"
    failed = "failed"
    cancelled = "cancelled"


# Statuses that count as revenue in reports.
SUCCESS_PAYMENT_STATUSES = frozenset(
    {
        PaymentStatus.paid.value,
        PaymentStatus.book_created.value,
        PaymentStatus.icount.value,
        PaymentStatus.fulfilled.value,
    }
)


class CouponType(str, Enum):
    """How a coupon changes the plan price."""

    percentage = "percentage"  # Subtract a percentage of the price.
    fixed = "fixed"  # Subtract a fixed amount, only for the coupon's plan.
    free = "free"  # Zero the price, only for the coupon's plan.


class PackageType(str, Enum):
    """What a plan sells."""

    system = "system"
    book = "book"


class RatingAction(str, Enum):
    """What the user did with the in-app rating prompt."""

    rated = "rated"
    store_review = "store_review"
    dismissed = "dismissed"


class AnswerLetter(str, Enum):
    """Answer options; ``a`` is always the correct one before shuffling."""

    a = "a"
    b = "b"
    c = "c"
    d = "d"


CORRECT_ANSWER = AnswerLetter.a.value

VALID_SYSTEM_STEPS = (1, 2, 3)
