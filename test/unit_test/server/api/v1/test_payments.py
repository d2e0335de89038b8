from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlsplit

import pytest
from httpx import AsyncClient

from smarti.core.database.entities import BookPurchase
from smarti.core.database.repositories.billing import (
    BookPurchaseRepository,
    PaymentTransactionRepository,
    SubscriptionRepository,
)
from smarti.core.database.repositories.coupons import CouponRepository
from smarti.core.models.io.payments import OrderPayload
from smarti.core.services.payments import (
    DOWNLOAD_READY_SUBJECT,
    build_callback_query,
    decode_order,
    encode_order,
    sign_query,
)
from smarti.server.core.config import settings

pytestmark = pytest.mark.asyncio

GATEWAY_TOKEN = "test-gateway-token"


def _signed_callback(transaction_id: str, amount: int, ccode: str = "0") -> dict:
    params = {
        "Id": "98765",
        "CCode": ccode,
        "Amount": str(amount),
        "ACode": "0012345",
        "Order": encode_order(OrderPayload(transaction_id=transaction_id, amount=amount)),
        "Fild1": "Noa",
        "Fild2": "noa@example.com",
        "Fild3": "",
    }
    params["Sign"] = sign_query(GATEWAY_TOKEN, build_callback_query(params))
    params["UserId"] = "123456789"
    params["cell"] = "0501234567"
    return params


async def _checkout(client: AsyncClient, **params) -> str:
    response = await client.get("/api/pay2", params={"UserId": "user-1", "PlanId": "plan-1", **params})
    assert response.status_code == 302
    query = parse_qs(urlsplit(response.headers["location"]).query)
    return decode_order(query["Order"][0]).transaction_id


class TestCheckout:
    async def test_redirects_to_payment_page(self, client: AsyncClient, user, plan):
        response = await client.get("/api/pay2", params={"UserId": user.id, "PlanId": plan.id})

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(settings.payment.pay_url + "?")
        assert "&signature=" in location
        assert parse_qs(urlsplit(location).query)["Amount"] == ["300"]

    async def test_missing_user(self, client: AsyncClient, plan):
        response = await client.get("/api/pay2", params={"PlanId": plan.id})
        assert response.status_code == 401
        assert response.json() == {"error": "invalid user"}

    async def test_book_requires_student_name(self, client: AsyncClient, user, plan):
        response = await client.get("/api/pay2", params={"UserId": user.id, "PlanId": plan.id, "bookIncluded": "True"})
        assert response.status_code == 400
        assert response.json() == {"error": "invalid Student Name"}

    async def test_book_already_purchased(self, client: AsyncClient, persist, user, plan):
        await persist(
            BookPurchase(
                user_id=user.id,
                product_id="product-book1",
                filename="smarti_book1_user-1.pdf.pdf",
                gcs_bucket="books",
                vat_id="123",
                valid_until=datetime.utcnow() + timedelta(days=10),
            )
        )

        response = await client.get(
            "/api/pay2",
            params={"UserId": user.id, "PlanId": plan.id, "bookIncluded": "True", "StudentName": "Dana"},
        )

        assert response.status_code == 200
        assert "החוברת כבר נרכשה" in response.text
        assert "https://storage.cloud.google.com/books/smarti_book1_user-1.pdf.pdf?authuser=3" in response.text


class TestCallback:
    async def test_declined_payment_renders_failure(self, client: AsyncClient):
        response = await client.get("/api/pay2/success", params={"CCode": "33"})
        assert response.status_code == 200
        assert "שגיאה מספר: 33" in response.text

    async def test_bad_signature(self, client: AsyncClient):
        params = _signed_callback("tx-1", 300)
        params["Amount"] = "1"
        response = await client.get("/api/pay2/success", params=params)
        assert response.status_code == 400
        assert response.text == "Validation error."

    async def test_unknown_transaction(self, client: AsyncClient):
        response = await client.get("/api/pay2/success", params=_signed_callback("missing", 300))
        assert response.status_code == 404
        assert response.text == "Transaction not found"

    async def test_price_mismatch(self, client: AsyncClient, user, plan):
        transaction_id = await _checkout(client)
        response = await client.get("/api/pay2/success", params=_signed_callback(transaction_id, 1))
        assert response.status_code == 400
        assert response.text == "Price mismatch"

    async def test_paid_checkout_with_book(self, client: AsyncClient, session, mailer, user, plan):
        transaction_id = await _checkout(client, bookIncluded="True", StudentName="Dana")

        response = await client.get("/api/pay2/success", params=_signed_callback(transaction_id, 420))

        assert response.status_code == 200
        assert "System 1" in response.text and "Book 1" in response.text
        assert f"https://storage.cloud.google.com/{settings.storage.bucket_name}/" in response.text
        assert [(email["to"], email["subject"]) for email in mailer.sent] == [
            ("noa@example.com", DOWNLOAD_READY_SUBJECT)
        ]

        transaction = await PaymentTransactionRepository(session).get_by_id(transaction_id)
        assert (transaction.status, transaction.vat_id) == ("fulfilled", "123456789")
        subscriptions = await SubscriptionRepository(session).list(filters={"payment_transaction_id": transaction_id})
        assert {subscription.product_id for subscription in subscriptions} == {"product-system1", "product-book1"}

    async def test_repeated_callback_fulfils_once(self, client: AsyncClient, session, mailer, user, plan):
        transaction_id = await _checkout(client, bookIncluded="True", StudentName="Dana")
        params = _signed_callback(transaction_id, 420)

        first = await client.get("/api/pay2/success", params=params)
        second = await client.get("/api/pay2/success", params=params)

        assert (first.status_code, second.status_code) == (200, 200)
        subscriptions = await SubscriptionRepository(session).list(filters={"payment_transaction_id": transaction_id})
        assert len(subscriptions) == 2
        purchases = await BookPurchaseRepository(session).list(filters={"payment_transaction_id": transaction_id})
        assert len(purchases) == 1
        assert len(mailer.sent) == 1

    async def test_mail_failure_still_grants_the_purchase(self, client: AsyncClient, session, mailer, user, plan):
        mailer.send_email = AsyncMock(side_effect=RuntimeError("mail provider down"))
        transaction_id = await _checkout(client, bookIncluded="True", StudentName="Dana")

        response = await client.get("/api/pay2/success", params=_signed_callback(transaction_id, 420))

        assert response.status_code == 200
        subscriptions = await SubscriptionRepository(session).list(filters={"payment_transaction_id": transaction_id})
        assert len(subscriptions) == 2
        transaction = await PaymentTransactionRepository(session).get_by_id(transaction_id)
        assert transaction.status == "fulfilled"


class TestFreeCheckout:
    async def test_free_coupon_grants_plan(self, client: AsyncClient, session, user, plan, make_coupon, live_window):
        coupon = await make_coupon(code="FREE", type="free", value=100, **live_window)

        response = await client.get(
            "/api/pay2/free", params={"UserId": user.id, "PlanId": plan.id, "CouponCode": "FREE"}
        )

        assert response.status_code == 200
        assert "הרכישה בוצעה בהצלחה" in response.text
        subscriptions = await SubscriptionRepository(session).list(filters={"user_id": user.id})
        assert [subscription.coupon_id for subscription in subscriptions] == [coupon.id]
        assert (await CouponRepository(session).get_by_id(coupon.id)).uses == 1

    async def test_partial_coupon_is_rejected(self, client: AsyncClient, user, plan, make_coupon, live_window):
        await make_coupon(code="TEN", **live_window)
        response = await client.get("/api/pay2/free", params={"UserId": user.id, "PlanId": plan.id, "CouponCode": "TEN"})
        assert response.status_code == 400
        assert response.json() == {"error": "coupon must provide 100% discount for free purchase"}

    async def test_coupon_code_required(self, client: AsyncClient, user, plan):
        response = await client.get("/api/pay2/free", params={"UserId": user.id, "PlanId": plan.id})
        assert response.status_code == 400
