"""Session token acquisition."""

from .tokens import TokenProvider, normalize_cookie_value, obtain_token, wait_for_auth_cookie

__all__ = ["TokenProvider", "normalize_cookie_value", "obtain_token", "wait_for_auth_cookie"]
