"""Three-tier acquisition of the workflows ``auth_token`` session cookie."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable, Iterable
from urllib.parse import quote, unquote

from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

from workflows_dump.core.config import Settings, get_settings
from workflows_dump.core.logging import get_logger

LOGGER = get_logger(__name__)

AUTH_COOKIE_NAME = "auth_token"
HEADLESS_ATTEMPTS, HEADLESS_DELAY = 60, 0.25
INTERACTIVE_ATTEMPTS, INTERACTIVE_DELAY = 480, 0.5

_PERCENT_ESCAPE = re.compile(r"%[0-9A-Fa-f]{2}")
# Characters encodeURIComponent leaves untouched beyond quote()'s own safe set.
_URI_COMPONENT_SAFE = "!*'()"


def normalize_cookie_value(raw: str | None) -> str:
    """Percent-decode a cookie value once if it looks encoded, then encode it exactly once."""
    if not raw:
        return ""
    value = raw
    if len(_PERCENT_ESCAPE.findall(value)) >= 3 or "%25" in value:
        value = _unquote_or_keep(value)
    return quote(value, safe=_URI_COMPONENT_SAFE)


def _unquote_or_keep(value: str) -> str:
    """Decode percent escapes; malformed UTF-8 sequences leave the value as is."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def find_auth_cookie(cookies: Iterable[Any]) -> str:
    """Return the ``auth_token`` value from cookie objects or Playwright cookie dicts."""
    for cookie in cookies:
        if isinstance(cookie, dict):
            name, value = cookie.get("name"), cookie.get("value")
        else:
            name, value = getattr(cookie, "name", None), getattr(cookie, "value", None)
        if name == AUTH_COOKIE_NAME and value:
            return str(value)
    return ""


def wait_for_auth_cookie(
    context: Any,
    base_url: str,
    *,
    attempts: int,
    delay: float,
    sleep: Callable[[float], None] | None = None,
) -> str:
    """Poll a browser context until the session cookie appears or attempts run out."""
    options: dict[str, Any] = {}
    if sleep is not None:
        options["sleep"] = sleep
    retryer = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(delay),
        retry=retry_if_result(lambda token: not token),
        retry_error_callback=lambda _state: "",
        **options,
    )
    return retryer(_read_context_cookie, context, base_url)


def _read_context_cookie(context: Any, base_url: str) -> str:
    try:
        cookies = context.cookies(base_url)
    except Exception:  # pylint: disable=broad-except
        cookies = []
    return find_auth_cookie(cookies)


class TokenProvider:
    """Resolves the session token from env/config, Chrome, then a Playwright profile."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def obtain_token(self, hostname: str, base_url: str) -> str:
        """Return a normalized token, or ``""`` when every source failed."""
        if self._settings.auth_token:
            LOGGER.debug("auth.token_source", source="config")
            return normalize_cookie_value(self._settings.auth_token)
        chrome_token = self.token_from_chrome(hostname)
        if chrome_token:
            LOGGER.debug("auth.token_source", source="chrome")
            return chrome_token
        browser_token = self.token_from_playwright(base_url)
        if browser_token:
            LOGGER.debug("auth.token_source", source="playwright")
            return browser_token
        return ""

    def token_from_chrome(self, hostname: str) -> str:
        try:
            import browser_cookie3
        except ImportError as exc:
            LOGGER.debug("auth.chrome_unavailable", error=str(exc))
            return ""
        try:
            jar = browser_cookie3.chrome(domain_name=hostname)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug("auth.chrome_failed", error=str(exc))
            return ""
        return normalize_cookie_value(find_auth_cookie(jar))

    def token_from_playwright(self, base_url: str) -> str:
        if not self._settings.use_playwright:
            return ""
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:
            LOGGER.debug("auth.playwright_unavailable", error=str(exc))
            return ""

        profile_dir = Path(self._settings.pw_profile_dir).expanduser()
        try:
            LOGGER.debug("auth.playwright_headless", profile_dir=str(profile_dir))
            token = self._capture_with_browser(
                sync_playwright,
                base_url,
                profile_dir,
                headless=True,
                attempts=HEADLESS_ATTEMPTS,
                delay=HEADLESS_DELAY,
            )
            if token:
                return normalize_cookie_value(token)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug("auth.playwright_headless_failed", error=str(exc))

        try:
            LOGGER.info("auth.interactive_login", message="Complete login/MFA in the browser window (one-time).")
            token = self._capture_with_browser(
                sync_playwright,
                base_url,
                profile_dir,
                headless=False,
                attempts=INTERACTIVE_ATTEMPTS,
                delay=INTERACTIVE_DELAY,
            )
            if token:
                LOGGER.info("auth.token_captured", message="Future runs should work headless.")
                return normalize_cookie_value(token)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug("auth.playwright_interactive_failed", error=str(exc))
        return ""

    @staticmethod
    def _capture_with_browser(
        sync_playwright: Callable[[], Any],
        base_url: str,
        profile_dir: Path,
        *,
        headless: bool,
        attempts: int,
        delay: float,
    ) -> str:
        viewport = {"width": 1280, "height": 800 if headless else 900}
        with sync_playwright() as playwright:
            context = playwright.chromium.launch_persistent_context(
                str(profile_dir),
                headless=headless,
                viewport=viewport,
            )
            try:
                page = context.new_page()
                try:
                    page.goto(f"{base_url}/app/", wait_until="load")
                except Exception as exc:  # pylint: disable=broad-except
                    LOGGER.debug("auth.playwright_navigation_failed", error=str(exc))
                return wait_for_auth_cookie(context, base_url, attempts=attempts, delay=delay)
            finally:
                context.close()


def obtain_token(hostname: str, base_url: str, settings: Settings | None = None) -> str:
    """Functional wrapper around TokenProvider."""
    return TokenProvider(settings).obtain_token(hostname, base_url)
