"""Unit tests for user access lists."""

from __future__ import annotations

import pytest

from smarti.core.services.access import (
    describe_access,
    has_full_access,
    is_admin,
    is_user_restricted,
    should_show_menu_item,
)
from smarti.server.core.config import AuthConfig


@pytest.fixture
def config() -> AuthConfig:
    return AuthConfig(
        admin_user_ids=["boss"],
        full_access_user_ids=["vip"],
        restricted_user_ids=["kid"],
    )


def test_lists(config):
    assert is_admin("boss", config)
    assert not is_admin("vip", config)
    assert has_full_access("vip", config)
    assert is_user_restricted("kid", config)


@pytest.mark.parametrize("check", [is_admin, has_full_access, is_user_restricted])
def test_anonymous_users_have_no_flags(config, check):
    assert check(None, config) is False


def test_restricted_users_do_not_see_the_shop(config):
    assert not should_show_menu_item("/shop", "kid", config)
    assert should_show_menu_item("/learn", "kid", config)
    assert should_show_menu_item("/shop", "boss", config)


def test_describe_access(config):
    assert describe_access("kid", config) == {
        "userId": "kid",
        "isAdmin": False,
        "hasFullAccess": False,
        "isRestricted": True,
        "showAuthButtons": False,
        "showPwaPrompt": False,
        "hiddenMenuItems": ["/shop", "/shop/book", "/online-lesson", "/contact"],
    }


def test_defaults_come_from_settings():
    assert is_admin("admin-user")
    assert has_full_access("vip-user")
