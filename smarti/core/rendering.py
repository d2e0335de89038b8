"""
HTML rendering for emails and payment result pages.

Templates live in ``smarti/core/templates`` and are rendered right to left
in Hebrew. Autoescaping is on for every template.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence, Union

from jinja2 import Environment, PackageLoader, select_autoescape

HEBREW_MONTHS = (
    "ינואר",
    "פברואר",
    "מרץ",
    "אפריל",
    "מאי",
    "יוני",
    "יולי",
    "אוגוסט",
    "ספטמבר",
    "אוקטובר",
    "נובמבר",
    "דצמבר",
)


def hebrew_date(value: Union[date, datetime, str, None]) -> str:
    """Format a date as ``15 בספטמבר 2025``; unparseable strings are returned unchanged."""
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return f"{value.day} ב{HEBREW_MONTHS[value.month - 1]} {value.year}"


environment = Environment(
    loader=PackageLoader("smarti.core", "templates"),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
environment.filters["hebrew_date"] = hebrew_date


def render_download_ready_email(
    download_link: str,
    password: str,
    recipient: str = "חבר/ה",
    filename: str = "הורדה",
    expires_at: Optional[Union[datetime, str]] = None,
) -> str:
    return environment.get_template("download_ready.html").render(
        recipient=recipient,
        download_link=download_link,
        filename=filename,
        password=password,
        expires_at=hebrew_date(expires_at),
    )


def render_payment_success(items: Sequence[Any], back_to_app_url: str) -> str:
    """Success page listing what was granted; ``items`` are ``FulfilledItem`` objects."""
    return environment.get_template("payment_success.html").render(items=items, back_to_app_url=back_to_app_url)


def render_payment_failed(code: str) -> str:
    return environment.get_template("payment_failed.html").render(code=code)


def render_book_already_purchased(
    download_link: Optional[str], password: Optional[str], valid_until: Optional[datetime]
) -> str:
    return environment.get_template("book_already_purchased.html").render(
        download_link=download_link, password=password, valid_until=valid_until
    )
