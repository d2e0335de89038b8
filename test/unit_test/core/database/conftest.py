"""Test configuration for database unit tests.

The in-memory engine and ``session`` fixtures come from the unit test
conftest; this module adds sample payloads for the entity tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest


@pytest.fixture(scope="function")
def sample_coupon_data() -> dict:
    """Sample coupon data for testing."""
    return {
        "code": "SCHOOL25",
        "type": "percentage",
        "value": 25,
        "valid_from": datetime(2025, 9, 1),
        "valid_until": datetime(2025, 9, 1) + timedelta(days=300),
        "max_uses": 40,
        "plan_id": "plan-1",
        "organization_year_id": "org-year-1",
        "system_step": 2,
    }


@pytest.fixture(scope="function")
def sample_question_group_data() -> dict:
    """Sample lesson question group data for testing."""
    return {
        "lesson_id": "lesson-1",
        "category_id": "cat-1",
        "question_list": ["q-1", "q-2", "q-3"],
        "time": 90,
        "system_step": 1,
    }
