"""
Payment Endpoints.

- ``GET /pay2``: start a checkout and redirect to the hosted payment page
- ``GET /pay2/success``: gateway callback, grants the purchase and renders
  the result page
- ``GET /pay2/free``: checkout fully covered by a coupon, no gateway involved

Side effects after the result page is rendered (emails, subscriptions,
status updates) are logged when they fail and never change the response.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from smarti.core.logging_config import get_logger
from smarti.core.models.io.payments import CheckoutRequest
from smarti.core.rendering import (
    render_book_already_purchased,
    render_download_ready_email,
    render_payment_failed,
    render_payment_success,
)
from smarti.core.services.payments import (
    Fulfilment,
    checkout_book_product_id,
    complete_fulfilment,
    decode_order,
    download_link,
    free_book_product_id,
    free_checkout_vat_id,
    is_approved,
    load_paid_transaction,
    prepare_fulfilment,
    start_checkout,
    start_free_checkout,
    verify_callback_signature,
)
from smarti.core.services.system_step import get_user_system_step
from smarti.server.core.config import settings
from smarti.server.services.deps import DocumentStoreDep, MailerDep, SessionDep

logger = get_logger(__name__)

router = APIRouter()


def _checkout_request(
    user_id: Optional[str],
    plan_id: Optional[str],
    book_included: Optional[str],
    coupon_code: Optional[str],
    email: Optional[str],
    student_name: Optional[str],
) -> CheckoutRequest:
    return CheckoutRequest(
        user_id=user_id or None,
        plan_id=plan_id or None,
        book_included=book_included == "True",
        coupon_code=coupon_code or None,
        email=email or None,
        student_name=student_name or None,
    )


def _back_to_app_url() -> str:
    return f"{settings.app_url}/learn" if settings.app_url else "/learn"


async def _fulfil(session, fulfilment: Fulfilment, mailer, documents, coupon_step: int) -> None:
    try:
        await complete_fulfilment(
            session, fulfilment, mailer, render_download_ready_email, coupon_step, documents=documents
        )
    except Exception:
        logger.error(f"Post payment tasks failed for transaction {fulfilment.transaction.id}", exc_info=True)


@router.get(
    "/pay2",
    summary="Start Checkout",
    description="Create a payment transaction and redirect to the hosted payment page.",
    responses={
        302: {"description": "Redirect to the payment page"},
        400: {"description": "Invalid plan, student name or coupon"},
        401: {"description": "Missing user id"},
        404: {"description": "Unknown user, plan or book product"},
    },
)
async def checkout(
    session: SessionDep,
    user_id: Optional[str] = Query(default=None, alias="UserId"),
    plan_id: Optional[str] = Query(default=None, alias="PlanId"),
    book_included: Optional[str] = Query(default=None, alias="bookIncluded"),
    coupon_code: Optional[str] = Query(default=None, alias="CouponCode"),
    email: Optional[str] = Query(default=None, alias="Email"),
    student_name: Optional[str] = Query(default=None, alias="StudentName"),
):
    request = _checkout_request(user_id, plan_id, book_included, coupon_code, email, student_name)
    result = await start_checkout(session, request, settings.payment)
    if result.existing_purchase is not None:
        purchase = result.existing_purchase
        link = download_link(purchase.gcs_bucket, purchase.filename) if purchase.filename else None
        html = render_book_already_purchased(link, purchase.vat_id, purchase.valid_until)
        return HTMLResponse(html)
    return RedirectResponse(result.redirect_url, status_code=302)


@router.get(
    "/pay2/success",
    summary="Payment Callback",
    description="Called by the payment gateway after the payment page. Verifies the signature and grants the purchase.",
    response_class=HTMLResponse,
    responses={
        400: {"description": "Bad signature, order payload or price"},
        404: {"description": "Unknown transaction, plan, coupon or product"},
        500: {"description": "Payment token or storage bucket not configured"},
    },
)
async def payment_success(request: Request, session: SessionDep, mailer: MailerDep, documents: DocumentStoreDep):
    params = request.query_params
    ccode = params.get("CCode", "")
    if not is_approved(ccode):
        return HTMLResponse(render_payment_failed(ccode or "-"))

    token = settings.payment.token
    if not token:
        return PlainTextResponse("Server misconfigured", status_code=500)
    if not verify_callback_signature(token, params, params.get("Sign", "")):
        return PlainTextResponse("Validation error.", status_code=400)

    order = decode_order(params.get("Order", ""))
    transaction, plan = await load_paid_transaction(session, order)

    fulfilment = await prepare_fulfilment(
        session,
        transaction,
        plan,
        vat_id=params.get("UserId", ""),
        book_product_id=checkout_book_product_id(plan),
        phone=params.get("cell", ""),
        bucket=settings.storage.bucket_name,
        app_url=settings.app_url or None,
    )
    html = render_payment_success(fulfilment.items, _back_to_app_url())
    await _fulfil(session, fulfilment, mailer, documents, plan.system_step)
    return HTMLResponse(html)


@router.get(
    "/pay2/free",
    summary="Free Checkout",
    description="Complete a purchase whose price a coupon reduces to zero.",
    response_class=HTMLResponse,
    responses={
        400: {"description": "Missing or invalid coupon, or the coupon does not cover the price"},
        401: {"description": "Missing user id"},
        404: {"description": "Unknown user, plan or book product"},
    },
)
async def free_checkout(
    session: SessionDep,
    mailer: MailerDep,
    documents: DocumentStoreDep,
    user_id: Optional[str] = Query(default=None, alias="UserId"),
    plan_id: Optional[str] = Query(default=None, alias="PlanId"),
    book_included: Optional[str] = Query(default=None, alias="bookIncluded"),
    coupon_code: Optional[str] = Query(default=None, alias="CouponCode"),
    email: Optional[str] = Query(default=None, alias="Email"),
    student_name: Optional[str] = Query(default=None, alias="StudentName"),
):
    request = _checkout_request(user_id, plan_id, book_included, coupon_code, email, student_name)
    transaction, plan, _coupon = await start_free_checkout(session, request)

    fulfilment = await prepare_fulfilment(
        session,
        transaction,
        plan,
        vat_id=free_checkout_vat_id(transaction.email, transaction.user_id),
        book_product_id=free_book_product_id(plan),
        bucket=settings.storage.bucket_name,
        app_url=settings.app_url or None,
        mark_book_created=True,
    )
    html = render_payment_success(fulfilment.items, _back_to_app_url())
    coupon_step = await get_user_system_step(session, transaction.user_id)
    await _fulfil(session, fulfilment, mailer, documents, coupon_step)
    return HTMLResponse(html)
