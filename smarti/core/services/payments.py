"""
Hosted payment page checkout and fulfilment.

Checkout stores a ``created`` transaction and redirects to the gateway with
a signed query. The gateway calls back with the result; an approved and
correctly signed callback grants the plan's products, creates book
purchases, emails download links and marks the transaction fulfilled.
Zero-amount checkouts with a free coupon skip the gateway and are
fulfilled immediately.
"""

from __future__ import annotations

import asyncio
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.billing import BookPurchase, Coupon, PaymentTransaction, Plan, Product
from smarti.core.database.repositories.billing import (
    BookPurchaseRepository,
    PaymentTransactionRepository,
    PlanRepository,
    ProductRepository,
)
from smarti.core.database.repositories.coupons import CouponRepository
from smarti.core.database.repositories.users import UserRepository
from smarti.core.errors import ApiError, MalformedPayloadError, NotFoundError, PlainTextError
from smarti.core.models.domain.enums import PackageType, PaymentStatus
from smarti.core.models.io.payments import CheckoutRequest, OrderPayload
from smarti.core.monitoring import track_server_event
from smarti.server.core.config import PaymentConfig

from .coupons import clear_user_coupon, validate_coupon
from .entitlements import BOOK_VALIDITY_DAYS, SubscriptionItem, create_subscriptions_if_missing, subscription_window
from .pricing import book_option, calculate_amount

logger = logging.getLogger(__name__)

SIGN_KEYS = ("Id", "CCode", "Amount", "ACode", "Order", "Fild1", "Fild2", "Fild3")
URI_COMPONENT_SAFE = "-_.!~*'()"
APPROVED_CODES = frozenset({"000", "0"})
BOOK_ADDON_INFO = " + חוברת הדרכה"
DOWNLOAD_READY_SUBJECT = "הקובץ שלך מוכן להורדה"
DEFAULT_RECIPIENT_NAME = "הורה יקר"
DEFAULT_BOOK_NAME = "החוברת הדיגיטלית"
DEFAULT_SUBSCRIPTION_NAME = "מנוי"
COUPON_WRONG_PLAN = "הקופון לא תקף לתכנית זו"


# =====================================================================
# Wire helpers
# =====================================================================


def encode_order(payload: OrderPayload) -> str:
    """Hex of the UTF-8 JSON order payload."""
    return payload.model_dump_json(by_alias=True).encode("utf-8").hex()


def decode_order(order_hex: str) -> OrderPayload:
    """Parse the ``Order`` parameter returned by the gateway.

    Raises:
        MalformedPayloadError: The value is not hex encoded JSON or lacks
            ``transactionId``/``amount``
    """
    try:
        raw = json.loads(binascii.unhexlify(order_hex).decode("utf-8"))
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayloadError("Bad Order payload") from exc
    try:
        return OrderPayload.model_validate(raw)
    except ValidationError as exc:
        raise MalformedPayloadError(
            f"Invalid Order payload. Value of 'order': {json.dumps(raw, ensure_ascii=False)}"
        ) from exc


def build_query_rfc3986(params: Mapping[str, Any]) -> str:
    """Sorted query string with RFC 3986 percent-encoding."""
    return "&".join(
        f"{quote(str(key), safe='-_.~')}={quote('' if params[key] is None else str(params[key]), safe='-_.~')}"
        for key in sorted(params)
    )


def build_callback_query(params: Mapping[str, Any]) -> str:
    """Query string the gateway signs its callback over, in ``SIGN_KEYS`` order."""
    return "&".join(f"{key}={quote(str(params.get(key) or ''), safe=URI_COMPONENT_SAFE)}" for key in SIGN_KEYS)


def sign_query(token: str, query: str) -> str:
    return hmac.new(token.encode("utf-8"), query.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_callback_signature(token: str, params: Mapping[str, Any], provided: str) -> bool:
    expected = sign_query(token, build_callback_query(params))
    return hmac.compare_digest(expected, provided or "")


def is_approved(ccode: Optional[str]) -> bool:
    return (ccode or "") in APPROVED_CODES


def book_filename(user_id: str, product_type: Optional[str], today: Optional[datetime] = None) -> str:
    """Name of the generated book PDF in the storage bucket."""
    if product_type:
        base = f"smarti_{product_type}_{user_id}.pdf"
    else:
        base = f"smarti{user_id}_{(today or utc_now_naive()).day}.pdf"
    return f"{base}.pdf"


def download_link(bucket: str, filename: str) -> str:
    return f"https://storage.cloud.google.com/{bucket}/{filename}?authuser=3"


def checkout_book_product_id(plan: Plan) -> str:
    """Book product sold with a checkout: the plan's own product for book plans."""
    if plan.package_type == PackageType.book.value:
        return (plan.products_ids or [""])[0] or ""
    return str((plan.display_data or {}).get("productBookId") or "")


def free_book_product_id(plan: Plan) -> str:
    if plan.package_type == PackageType.book.value:
        return (plan.products_ids or [""])[0] or ""
    return str(book_option(plan).get("productId") or "")


def _plan_category(plan: Plan) -> str:
    return "books" if plan.package_type == PackageType.book.value else "system"


# =====================================================================
# Fulfilment
# =====================================================================


@dataclass
class FulfilledItem:
    """One product granted by a paid transaction."""

    product_id: str
    display_name: str
    type: str
    system_until: datetime
    system_step: int
    download_link: Optional[str] = None
    filename: Optional[str] = None
    convert_url: Optional[str] = None
    password: Optional[str] = None


@dataclass
class Fulfilment:
    transaction: PaymentTransaction
    plan: Plan
    vat_id: str
    items: List[FulfilledItem] = field(default_factory=list)

    @property
    def books(self) -> List[FulfilledItem]:
        return [item for item in self.items if item.type == PackageType.book.value and item.download_link]


@dataclass
class CheckoutResult:
    """Outcome of a checkout: a gateway redirect or an existing book purchase."""

    transaction_id: Optional[str] = None
    amount: int = 0
    redirect_url: Optional[str] = None
    existing_purchase: Optional[BookPurchase] = None


async def update_payment_transaction(
    session: AsyncSession,
    transaction_id: str,
    vat_id: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
) -> Optional[PaymentTransaction]:
    repository = PaymentTransactionRepository(session)
    transaction = await repository.get_by_id(transaction_id)
    if transaction is None:
        return None
    if status is not None:
        transaction.status = status.value
    if vat_id:
        transaction.vat_id = vat_id
    transaction.updated_at = utc_now_naive()
    return await repository.update(transaction)


async def _create_book_purchase(
    session: AsyncSession,
    product: Product,
    transaction: PaymentTransaction,
    vat_id: str,
    phone: str,
    bucket: Optional[str],
    app_url: Optional[str],
    now: datetime,
    mark_book_created: bool,
) -> FulfilledItem:
    if not bucket:
        raise PlainTextError("Server misconfigured", 500)

    purchases = BookPurchaseRepository(session)
    existing = await purchases.get_for_transaction(transaction.id, product.id)
    if existing is not None:
        filename = existing.filename or book_filename(transaction.user_id, product.product_type, now)
        bucket = existing.gcs_bucket or bucket
        system_until = existing.valid_until or subscription_window(now, BOOK_VALIDITY_DAYS)
    else:
        filename = book_filename(transaction.user_id, product.product_type, now)
        system_until = subscription_window(now, BOOK_VALIDITY_DAYS)
        await purchases.create(
            BookPurchase(
                user_id=transaction.user_id,
                product_id=product.id,
                payment_transaction_id=transaction.id,
                student_name=transaction.student_name or "",
                email=transaction.email or "",
                phone=phone,
                filename=filename,
                gcs_bucket=bucket,
                generated=False,
                vat_id=vat_id,
                valid_until=system_until,
            )
        )
        if mark_book_created:
            await update_payment_transaction(session, transaction.id, vat_id, PaymentStatus.book_created)

    convert_url = (
        f"{app_url}/api/book/generate?userId={transaction.user_id}&productId={product.id}" if app_url else None
    )
    return FulfilledItem(
        product_id=product.id,
        display_name=product.name or DEFAULT_BOOK_NAME,
        type=PackageType.book.value,
        system_until=system_until,
        system_step=product.system_step,
        download_link=download_link(bucket, filename),
        filename=filename,
        convert_url=convert_url,
        password=vat_id,
    )


async def prepare_fulfilment(
    session: AsyncSession,
    transaction: PaymentTransaction,
    plan: Plan,
    vat_id: str,
    book_product_id: Optional[str],
    phone: str = "",
    bucket: Optional[str] = None,
    app_url: Optional[str] = None,
    now: Optional[datetime] = None,
    mark_book_created: bool = False,
) -> Fulfilment:
    """Create book purchases and work out the subscriptions a paid transaction grants.

    Book plans grant each of their products for a year as a book. System
    plans grant their products for ``plan.days`` and, when the book was
    included, the book product for a year.

    Raises:
        PlainTextError: A product is missing (404), the book product is not
            configured (500) or the storage bucket is not configured (500)
    """
    now = now or utc_now_naive()
    products = ProductRepository(session)
    fulfilment = Fulfilment(transaction=transaction, plan=plan, vat_id=vat_id)

    for product_id in plan.products_ids or []:
        product = await products.get_by_id(product_id)
        if product is None:
            raise PlainTextError("Product not found", 404)
        if plan.package_type == PackageType.book.value:
            item = await _create_book_purchase(
                session, product, transaction, vat_id, phone, bucket, app_url, now, mark_book_created
            )
        else:
            item = FulfilledItem(
                product_id=product.id,
                display_name=product.name or DEFAULT_SUBSCRIPTION_NAME,
                type=PackageType.system.value,
                system_until=subscription_window(now, plan.days),
                system_step=product.system_step,
            )
        fulfilment.items.append(item)

    if plan.package_type != PackageType.book.value and transaction.book_included:
        if not book_product_id:
            raise PlainTextError("Product book not configured", 500)
        product_book = await products.get_by_id(book_product_id)
        if product_book is None:
            raise PlainTextError("Product book not found", 404)
        fulfilment.items.append(
            await _create_book_purchase(
                session, product_book, transaction, vat_id, phone, bucket, app_url, now, mark_book_created
            )
        )

    return fulfilment


async def _queue_book_generation(fulfilment: Fulfilment, documents: Any) -> None:
    transaction = fulfilment.transaction
    for book in fulfilment.books:
        try:
            await asyncio.to_thread(
                documents.set_document,
                f"books/{transaction.email}",
                {
                    "StudentName": transaction.student_name,
                    "amount": transaction.total_price,
                    "email": transaction.email,
                    "planId": fulfilment.plan.id,
                    "vat_id": fulfilment.vat_id,
                    "filename": book.filename,
                    "generated": False,
                },
            )
        except Exception:
            logger.error(f"Could not queue book {book.filename} for transaction {transaction.id}", exc_info=True)


async def _send_download_emails(fulfilment: Fulfilment, mailer: Any, render_email: Any) -> None:
    transaction = fulfilment.transaction
    recipient = transaction.student_name or DEFAULT_RECIPIENT_NAME
    for book in fulfilment.books:
        try:
            html = render_email(
                recipient=recipient,
                download_link=book.download_link,
                filename=book.filename,
                password=fulfilment.vat_id,
                expires_at=book.system_until.isoformat(),
            )
            await mailer.send_email(transaction.email, html, DOWNLOAD_READY_SUBJECT)
        except Exception:
            logger.error(f"Could not email book {book.filename} for transaction {transaction.id}", exc_info=True)


async def complete_fulfilment(
    session: AsyncSession,
    fulfilment: Fulfilment,
    mailer: Any,
    render_email: Any,
    coupon_step: int,
    documents: Optional[Any] = None,
) -> None:
    """Side effects of a successful payment.

    Creates the subscriptions once per transaction, marks the transaction
    fulfilled and clears the coupon the user had saved. Afterwards each book's
    download link is emailed and, when a document store is given, the book is
    queued for PDF generation under ``books/{email}``. A failed email or queue
    write is logged and leaves the granted purchase in place. Callbacks for an
    already fulfilled transaction send nothing.
    """
    transaction = fulfilment.transaction
    already_fulfilled = transaction.status == PaymentStatus.fulfilled.value

    if fulfilment.items:
        created = await create_subscriptions_if_missing(
            session,
            [
                SubscriptionItem(
                    user_id=transaction.user_id,
                    product_id=item.product_id,
                    coupon_id=transaction.coupon_id,
                    payment_transaction_id=transaction.id,
                    system_until=item.system_until,
                    system_step=item.system_step,
                )
                for item in fulfilment.items
            ],
            transaction.id,
        )
        if created:
            for item in fulfilment.items:
                track_server_event(
                    transaction.user_id,
                    "subscription_created",
                    {
                        "systemStep": item.system_step,
                        "subscriptionId": transaction.id,
                        "productId": item.product_id,
                        "productType": item.type,
                        "validUntil": item.system_until.isoformat(),
                        "planId": fulfilment.plan.id,
                    },
                )

    if already_fulfilled:
        logger.info(f"Transaction {transaction.id} already fulfilled, skipping notifications")
        return

    await update_payment_transaction(session, transaction.id, fulfilment.vat_id, PaymentStatus.fulfilled)
    track_server_event(
        transaction.user_id,
        "purchase_completed",
        {
            "systemStep": fulfilment.plan.system_step,
            "transactionId": transaction.id,
            "amount": transaction.total_price,
            "planId": fulfilment.plan.id,
            "planName": fulfilment.plan.name,
            "planType": fulfilment.plan.package_type,
            "category": _plan_category(fulfilment.plan),
            "couponId": transaction.coupon_id,
            "bookIncluded": transaction.book_included,
            "subscriptionsCreated": len(fulfilment.items),
        },
    )

    if transaction.coupon_id:
        await clear_user_coupon(session, transaction.user_id, coupon_step)

    if not transaction.email:
        return
    if documents is not None:
        await _queue_book_generation(fulfilment, documents)
    await _send_download_emails(fulfilment, mailer, render_email)


# =====================================================================
# Checkout
# =====================================================================


def checkout_params(
    plan: Plan, amount: int, order_hex: str, email: Optional[str], book_included: bool, config: PaymentConfig
) -> Dict[str, str]:
    return {
        "action": "pay",
        "Masof": config.masof,
        "Info": f"{plan.internal_description} - {BOOK_ADDON_INFO if book_included else ''}",
        "UTF8": "True",
        "UTF8out": "True",
        "Amount": str(amount),
        "Order": order_hex,
        "Tash": "1",
        "tashType": "1",
        "sendemail": "True",
        "pageTimeOut": "True",
        "PageLang": "HEB",
        "Coin": "1",
        "Sign": "True",
        "Postpone": "False",
        "email": email or "",
        "SendHesh": "True",
        "MoreData": "True",
        "PassP": config.pass_p,
        "tmp": "3",
    }


async def _load_checkout_plan(session: AsyncSession, request: CheckoutRequest) -> Plan:
    if not request.user_id:
        raise ApiError("invalid user", 401)
    user = await UserRepository(session).get_by_id(request.user_id)
    if user is None:
        raise NotFoundError("user not found")
    if not request.email:
        request.email = user.email or None
    if not request.plan_id:
        raise MalformedPayloadError("invalid plan")
    plan = await PlanRepository(session).get_by_id(request.plan_id)
    if plan is None:
        raise NotFoundError("plan not found")
    return plan


async def start_checkout(
    session: AsyncSession, request: CheckoutRequest, config: PaymentConfig, now: Optional[datetime] = None
) -> CheckoutResult:
    """Create a transaction and the signed gateway redirect for it.

    Raises:
        ApiError: Invalid parameters (400/401) or unknown user, plan or book
            product (404)
    """
    plan = await _load_checkout_plan(session, request)

    if request.book_included and (not request.student_name or not request.email):
        raise MalformedPayloadError("invalid Student Name")

    if request.book_included:
        product_book_id = checkout_book_product_id(plan)
        if not product_book_id:
            raise NotFoundError("product book not found")
        existing = await BookPurchaseRepository(session).get_valid(
            request.user_id, product_book_id, now or utc_now_naive()
        )
        if existing is not None:
            return CheckoutResult(existing_purchase=existing)

    coupon_id = None
    if request.coupon_code:
        coupon = await CouponRepository(session).get_by_code(request.coupon_code)
        if coupon is None:
            raise MalformedPayloadError("invalid coupon")
        coupon_id = coupon.id

    amount = await calculate_amount(session, plan, coupon_id, request.book_included)
    transaction = await PaymentTransactionRepository(session).create(
        PaymentTransaction(
            user_id=request.user_id,
            plan_id=plan.id,
            status=PaymentStatus.created.value,
            email=request.email,
            student_name=request.student_name,
            coupon_id=coupon_id,
            book_included=request.book_included,
            total_price=amount,
            system_step=plan.system_step,
        )
    )

    track_server_event(
        request.user_id,
        "purchase_initiated",
        {
            "systemStep": plan.system_step,
            "planId": plan.id,
            "planName": plan.name,
            "planType": plan.package_type,
            "category": _plan_category(plan),
            "totalPrice": amount,
            "couponCode": request.coupon_code or None,
            "bookIncluded": request.book_included,
            "transactionId": transaction.id,
        },
    )

    order_hex = encode_order(OrderPayload(transaction_id=transaction.id, amount=amount))
    query = build_query_rfc3986(
        checkout_params(plan, amount, order_hex, request.email, request.book_included, config)
    )
    signature = sign_query(config.token or "default", query)
    redirect_url = f"{config.pay_url}?{query}&signature={signature}"

    track_server_event(
        request.user_id,
        "payment_redirected",
        {"systemStep": plan.system_step, "transactionId": transaction.id, "amount": amount, "planId": plan.id},
    )
    logger.info(f"Checkout {transaction.id} for plan {plan.id} redirected to the gateway, amount {amount}")
    return CheckoutResult(transaction_id=transaction.id, amount=amount, redirect_url=redirect_url)


async def load_paid_transaction(session: AsyncSession, order: OrderPayload) -> tuple[PaymentTransaction, Plan]:
    """Transaction and plan of a gateway callback, verified against the order amount.

    Raises:
        PlainTextError: Unknown transaction, plan or coupon (404) or a price
            mismatch (400)
    """
    transaction = await PaymentTransactionRepository(session).get_by_id(order.transaction_id)
    if transaction is None:
        raise PlainTextError("Transaction not found", 404)
    plan = await PlanRepository(session).get_by_id(transaction.plan_id) if transaction.plan_id else None
    if plan is None:
        raise PlainTextError("Plan not found", 404)
    if transaction.coupon_id and await CouponRepository(session).get_by_id(transaction.coupon_id) is None:
        raise PlainTextError("Coupon not found", 404)

    price = await calculate_amount(session, plan, transaction.coupon_id, transaction.book_included)
    if price != order.amount:
        raise PlainTextError("Price mismatch", 400)
    return transaction, plan


async def start_free_checkout(
    session: AsyncSession, request: CheckoutRequest
) -> tuple[PaymentTransaction, Plan, Coupon]:
    """Create and pay a zero-amount transaction covered by a coupon.

    Raises:
        ApiError: Missing parameters, an invalid coupon, a coupon that does
            not cover the full price or belongs to another plan (400), or
            unknown user, plan or book product (404)
    """
    if not request.user_id:
        raise ApiError("invalid user", 401)
    user = await UserRepository(session).get_by_id(request.user_id)
    if user is None:
        raise NotFoundError("user not found")
    if not request.email:
        request.email = user.email or None
    if not request.plan_id:
        raise MalformedPayloadError("invalid plan")
    if not request.coupon_code:
        raise MalformedPayloadError("coupon code required")
    plan = await PlanRepository(session).get_by_id(request.plan_id)
    if plan is None:
        raise NotFoundError("plan not found")

    if request.book_included and (not request.student_name or not request.email):
        raise MalformedPayloadError("student name and email required for book purchase")

    validation = await validate_coupon(session, request.coupon_code, plan.system_step)
    if not validation.valid or validation.coupon is None:
        raise MalformedPayloadError(validation.error or "invalid coupon")
    coupon = validation.coupon

    amount = await calculate_amount(session, plan, coupon.id, request.book_included)
    if amount > 0:
        raise MalformedPayloadError("coupon must provide 100% discount for free purchase")
    if coupon.plan_id and coupon.plan_id != plan.id:
        raise MalformedPayloadError(COUPON_WRONG_PLAN)

    if request.book_included and not free_book_product_id(plan):
        raise NotFoundError("product book not found")

    transaction = await PaymentTransactionRepository(session).create(
        PaymentTransaction(
            user_id=request.user_id,
            plan_id=plan.id,
            status=PaymentStatus.created.value,
            email=request.email,
            student_name=request.student_name,
            coupon_id=coupon.id,
            book_included=request.book_included,
            total_price=0,
            system_step=plan.system_step,
        )
    )

    event = {
        "systemStep": plan.system_step,
        "planId": plan.id,
        "planName": plan.name,
        "planType": plan.package_type,
        "category": _plan_category(plan),
        "totalPrice": 0,
        "couponCode": request.coupon_code,
        "bookIncluded": request.book_included,
        "transactionId": transaction.id,
    }
    track_server_event(request.user_id, "checkout_page_viewed", event)
    track_server_event(request.user_id, "purchase_initiated", event)

    transaction = await update_payment_transaction(session, transaction.id, request.user_id, PaymentStatus.paid)

    paid = {
        "systemStep": plan.system_step,
        "transactionId": transaction.id,
        "amount": 0,
        "planId": plan.id,
        "planType": plan.package_type,
        "couponId": coupon.id,
        "bookIncluded": request.book_included,
    }
    track_server_event(request.user_id, "payment_success", {**paid, "paymentMethod": "free_coupon"})
    track_server_event(request.user_id, "payment_completed", paid)
    return transaction, plan, coupon


def free_checkout_vat_id(email: Optional[str], user_id: str) -> str:
    """Book password for free purchases: the email's local part, else the user id."""
    return email.split("@")[0] if email else user_id
