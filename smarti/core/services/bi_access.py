"""
Password gate for the BI dashboard.

A successful login sets the ``bi_access`` cookie to ``"{expiry}:{signature}"``
where the signature is the hex HMAC-SHA256 of the expiry (unix seconds)
keyed by the BI password. Changing the password invalidates every cookie.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional

COOKIE_NAME = "bi_access"
MAX_AGE_SECONDS = 86400


def _sign(password: str, expiry: str) -> str:
    return hmac.new(password.encode("utf-8"), expiry.encode("utf-8"), hashlib.sha256).hexdigest()


def check_password(candidate: Optional[str], password: str) -> bool:
    return hmac.compare_digest((candidate or "").encode("utf-8"), password.encode("utf-8"))


def create_bi_cookie_value(password: str, now: Optional[float] = None) -> str:
    expiry = str(int(now if now is not None else time.time()) + MAX_AGE_SECONDS)
    return f"{expiry}:{_sign(password, expiry)}"


def verify_bi_cookie(value: Optional[str], password: str, now: Optional[float] = None) -> bool:
    """Whether ``value`` is an unexpired cookie signed with ``password``."""
    if not value or not isinstance(value, str):
        return False
    parts = value.split(":")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return False
    expiry_text, signature = parts[0], parts[1]
    try:
        expiry = int(expiry_text)
    except ValueError:
        return False
    if expiry < int(now if now is not None else time.time()):
        return False
    return hmac.compare_digest(signature.lower(), _sign(password, expiry_text))
