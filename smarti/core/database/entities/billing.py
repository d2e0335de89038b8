"""
Billing entity models.

This module contains the database entities for selling access:
- Plan: a purchasable package (system access or a book) and its price
- Product: an entitlement granted by a plan, identified by product type
- Coupon: a discount code, optionally bound to a plan and organization year
- Subscription: a product granted to a user until ``system_until``
- PaymentTransaction: one checkout attempt and its status
- BookPurchase: a purchased practice book and where to download it
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Field

from smarti.core.models.domain.enums import PackageType, PaymentStatus

from ..base import Base, NaiveDateTime, new_id, utc_now_naive


class PlanBase(Base):
    """Base fields for plans."""

    name: str = Field(description="Plan name shown in the shop")
    description: Optional[str] = Field(default=None)
    internal_description: Optional[str] = Field(default=None, description="Description sent to the payment page")
    days: int = Field(default=365, description="Access duration granted by system plans")
    price: int = Field(default=0, description="Price in whole shekels")
    is_active: bool = Field(default=True)
    system_step: int = Field(default=1)
    package_type: str = Field(default=PackageType.system.value, description="system or book")
    order: int = Field(default=0, description="Sort order in the shop")
    display_data: Optional[Dict[str, Any]] = Field(
        default=None, sa_type=JSON, description="Shop presentation data, incl. addBookOption and productBookId"
    )
    products_ids: List[str] = Field(default_factory=list, sa_type=JSON, description="Products granted by the plan")


class Plan(PlanBase, table=True):
    """Table: plans"""

    __tablename__ = "plans"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"Plan(id={self.id}, name={self.name}, price={self.price}, package_type={self.package_type})"


class ProductBase(Base):
    """Base fields for products."""

    name: Optional[str] = Field(default=None)
    product_type: str = Field(description="Entitlement key, e.g. system1 or book1")
    system_step: int = Field(default=1)


class Product(ProductBase, table=True):
    """Table: products"""

    __tablename__ = "products"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class CouponBase(Base):
    """Base fields for coupons."""

    code: str = Field(index=True, description="Code typed by the user")
    type: str = Field(description="percentage, fixed or free")
    value: int = Field(description="Percent or amount, depending on type")
    valid_from: datetime = Field(sa_type=NaiveDateTime)
    valid_until: datetime = Field(sa_type=NaiveDateTime)
    is_active: bool = Field(default=True)
    max_uses: int = Field(description="Redemptions allowed before the coupon deactivates")
    uses: int = Field(default=0, description="Redemptions so far")
    plan_id: str = Field(description="Plan the coupon was issued for")
    organization_year_id: str = Field(index=True, description="Organization year that distributes the coupon")
    system_step: int = Field(default=1)


class Coupon(CouponBase, table=True):
    """Table: coupons"""

    __tablename__ = "coupons"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"Coupon(code={self.code}, type={self.type}, uses={self.uses}/{self.max_uses})"


class SubscriptionBase(Base):
    """Base fields for subscriptions."""

    user_id: str = Field(index=True)
    product_id: str
    coupon_id: Optional[str] = Field(default=None)
    payment_transaction_id: Optional[str] = Field(default=None, index=True)
    system_until: Optional[datetime] = Field(
        default=None, sa_type=NaiveDateTime, description="Access expires after this moment"
    )
    system_step: int = Field(default=1)
    price: Optional[int] = Field(default=None)


class Subscription(SubscriptionBase, table=True):
    """Table: subscriptions"""

    __tablename__ = "subscriptions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class PaymentTransactionBase(Base):
    """Base fields for payment transactions."""

    user_id: str = Field(index=True)
    plan_id: Optional[str] = Field(default=None)
    status: str = Field(default=PaymentStatus.created.value)
    total_price: int = Field(default=0)
    vat_id: Optional[str] = Field(default=None, description="Payer id number, also the book password")
    email: Optional[str] = Field(default=None)
    student_name: Optional[str] = Field(default=None)
    coupon_id: Optional[str] = Field(default=None)
    book_included: bool = Field(default=False)
    system_step: int = Field(default=1)


class PaymentTransaction(PaymentTransactionBase, table=True):
    """Table: payment_transactions"""

    __tablename__ = "payment_transactions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, index=True, sa_type=NaiveDateTime)
    updated_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"PaymentTransaction(id={self.id}, status={self.status}, total_price={self.total_price})"


class BookPurchaseBase(Base):
    """Base fields for book purchases."""

    user_id: str = Field(index=True)
    product_id: str = Field(index=True)
    payment_transaction_id: Optional[str] = Field(default=None)
    student_name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    phone: Optional[str] = Field(default=None)
    filename: Optional[str] = Field(default=None)
    gcs_bucket: Optional[str] = Field(default=None)
    generated: bool = Field(default=False, description="Whether the PDF has been generated")
    vat_id: Optional[str] = Field(default=None)
    valid_until: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)


class BookPurchase(BookPurchaseBase, table=True):
    """Table: book_purchases"""

    __tablename__ = "book_purchases"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    @property
    def download_link(self) -> Optional[str]:
        if not self.filename:
            return None
        return f"https://storage.cloud.google.com/{self.gcs_bucket}/{self.filename}?authuser=3"
