"""Navigation attempts with escalating tolerance and user-agent rotation."""

from __future__ import annotations

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .errors import NavigationError
from .logging import jlog
from .models import NavigationAttempt

_WAIT_TABLE: tuple[tuple[str, int], ...] = (
    ("domcontentloaded", 90_000),
    ("domcontentloaded", 120_000),
    ("load", 120_000),
    ("networkidle", 120_000),
    ("domcontentloaded", 150_000),
)

# Entry 0 keeps the device default configured on the browser context.
ALTERNATIVE_USER_AGENTS: tuple[str | None, ...] = (
    None,
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
)

NAVIGATION_STRATEGIES: tuple[NavigationAttempt, ...] = tuple(
    NavigationAttempt(index=i, wait_until=wait_until, timeout_ms=timeout_ms, user_agent=ALTERNATIVE_USER_AGENTS[i])
    for i, (wait_until, timeout_ms) in enumerate(_WAIT_TABLE)
)


def select_attempt(attempt_number: int) -> NavigationAttempt:
    """Return the strategy for a 1-based attempt number, clamped to the table."""

    index = min(max(attempt_number - 1, 0), len(NAVIGATION_STRATEGIES) - 1)
    return NAVIGATION_STRATEGIES[index]


async def navigate(page: Page, url: str, attempt_number: int, max_attempts: int) -> NavigationAttempt:
    """Navigate ``page`` to ``url`` using the strategy for ``attempt_number``.

    The attempt's user agent must already be bound to the page's browser
    context (see :func:`adshot.browser.BrowserSession.new_page`). Raises
    :class:`NavigationError` when the browser gives up.
    """

    attempt = select_attempt(attempt_number)
    jlog(
        "info",
        event="navigation_attempt",
        url=url,
        attempt=attempt_number,
        max_attempts=max_attempts,
        strategy=attempt.name,
        user_agent_override=bool(attempt.user_agent),
    )
    try:
        await page.goto(url, wait_until=attempt.wait_until, timeout=attempt.timeout_ms)
    except PlaywrightError as exc:
        jlog("warning", event="navigation_failed", url=url, attempt=attempt_number, strategy=attempt.name, error=str(exc))
        raise NavigationError(url, attempt_number, exc) from exc
    return attempt


__all__ = ["ALTERNATIVE_USER_AGENTS", "NAVIGATION_STRATEGIES", "navigate", "select_attempt"]
