"""Unit tests for admin payload normalization."""

from __future__ import annotations

from datetime import datetime

import pytest

from smarti.core.services.sanitize import (
    is_date_like_key,
    parse_datetime,
    sanitize_dates,
    to_snake_case_payload,
)


class TestDateLikeKeys:
    @pytest.mark.parametrize("key", ["createdAt", "deletedAt", "startedAt", "validFrom", "validUntil", "systemUntil"])
    def test_date_like(self, key):
        assert is_date_like_key(key)

    @pytest.mark.parametrize("key", ["name", "at", "validity", "created"])
    def test_not_date_like(self, key):
        assert not is_date_like_key(key)


class TestParseDatetime:
    def test_iso_datetime_with_offset_is_converted_to_naive_utc(self):
        assert parse_datetime("2025-03-01T12:00:00+02:00") == datetime(2025, 3, 1, 10, 0, 0)

    def test_zulu_suffix(self):
        assert parse_datetime("2025-03-01T12:00:00Z") == datetime(2025, 3, 1, 12, 0, 0)

    def test_plain_date(self):
        assert parse_datetime("2025-03-01") == datetime(2025, 3, 1)

    @pytest.mark.parametrize("value", ["", "   ", "not a date", "2025-13-45"])
    def test_unparseable(self, value):
        assert parse_datetime(value) is None


class TestSanitizeDates:
    def test_coerces_parseable_strings(self):
        out = sanitize_dates({"validFrom": "2025-01-01", "name": "2025-01-01"})
        assert out["validFrom"] == datetime(2025, 1, 1)
        assert out["name"] == "2025-01-01"

    def test_drops_unparseable_date_strings(self):
        out = sanitize_dates({"createdAt": "yesterday", "code": "X"})
        assert "createdAt" not in out
        assert out["code"] == "X"

    def test_keeps_none_and_non_strings(self):
        stamp = datetime(2024, 5, 5)
        out = sanitize_dates({"deletedAt": None, "updatedAt": stamp, "startedAt": 1700000000})
        assert out == {"deletedAt": None, "updatedAt": stamp, "startedAt": 1700000000}

    def test_does_not_modify_input(self):
        payload = {"validUntil": "2025-06-30"}
        sanitize_dates(payload)
        assert payload == {"validUntil": "2025-06-30"}


def test_to_snake_case_payload():
    assert to_snake_case_payload({"organizationYearId": "y", "maxUses": 3, "code": "A"}) == {
        "organization_year_id": "y",
        "max_uses": 3,
        "code": "A",
    }
