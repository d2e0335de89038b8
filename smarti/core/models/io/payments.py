"""Models exchanged with the hosted payment page."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import ConfigDict, StrictFloat, StrictInt, StrictStr

from .common import CamelModel


class OrderPayload(CamelModel):
    """Payload round-tripped through the gateway in the ``Order`` parameter."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transaction_id: StrictStr
    amount: Union[StrictInt, StrictFloat]


class CheckoutRequest(CamelModel):
    """Query parameters of a checkout link."""

    user_id: Optional[str] = None
    plan_id: Optional[str] = None
    book_included: bool = False
    coupon_code: Optional[str] = None
    email: Optional[str] = None
    student_name: Optional[str] = None
