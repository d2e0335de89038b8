"""
Access lists.

Admins may use the admin API, full access users see every premium feature
and restricted users (demo accounts handed to partners) do not see the shop,
the sign in buttons or the PWA install prompt.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from smarti.server.core.config import AuthConfig, settings

RESTRICTED_MENU_ITEMS = ("/shop", "/shop/book", "/online-lesson", "/contact")


def _auth(config: Optional[AuthConfig]) -> AuthConfig:
    return config or settings.auth


def is_admin(user_id: Optional[str], config: Optional[AuthConfig] = None) -> bool:
    if not user_id:
        return False
    return user_id in _auth(config).admin_user_ids


def has_full_access(user_id: Optional[str], config: Optional[AuthConfig] = None) -> bool:
    if not user_id:
        return False
    return user_id in _auth(config).full_access_user_ids


def is_user_restricted(user_id: Optional[str], config: Optional[AuthConfig] = None) -> bool:
    """Guests are never restricted."""
    if not user_id:
        return False
    return user_id in _auth(config).restricted_user_ids


def should_show_auth_buttons(user_id: Optional[str], config: Optional[AuthConfig] = None) -> bool:
    return not is_user_restricted(user_id, config)


def should_show_pwa_prompt(user_id: Optional[str], config: Optional[AuthConfig] = None) -> bool:
    return not is_user_restricted(user_id, config)


def should_show_menu_item(href: str, user_id: Optional[str], config: Optional[AuthConfig] = None) -> bool:
    if not is_user_restricted(user_id, config):
        return True
    return href not in RESTRICTED_MENU_ITEMS


def describe_access(user_id: Optional[str], config: Optional[AuthConfig] = None) -> Dict[str, object]:
    """Access summary for the web client."""
    hidden: List[str] = [href for href in RESTRICTED_MENU_ITEMS if not should_show_menu_item(href, user_id, config)]
    return {
        "userId": user_id,
        "isAdmin": is_admin(user_id, config),
        "hasFullAccess": has_full_access(user_id, config),
        "isRestricted": is_user_restricted(user_id, config),
        "showAuthButtons": should_show_auth_buttons(user_id, config),
        "showPwaPrompt": should_show_pwa_prompt(user_id, config),
        "hiddenMenuItems": hidden,
    }
