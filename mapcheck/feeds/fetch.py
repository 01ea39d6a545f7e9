from __future__ import annotations

from urllib.parse import quote

import httpx

"""Feed retrieval over HTTP(S).

One attempt per source and run: no retry or backoff. A non-2xx status or any
transport error becomes FeedFetchError, which the import pipeline treats as a
failure of that source only.

Published Google Sheets can refuse cross-origin browser requests; a
pass-through proxy prefix can be configured, in which case the feed URL is
percent-encoded and appended to it.
"""

__all__ = [
    "FeedFetchError",
    "HTTP_TIMEOUT_SECONDS",
    "USER_AGENT",
    "build_fetch_url",
    "fetch_feed_text",
]

HTTP_TIMEOUT_SECONDS = 30.0
USER_AGENT = "mapcheck/1.0"


class FeedFetchError(Exception):
    """Raised when a feed cannot be downloaded."""


def build_fetch_url(url: str, proxy_prefix: str | None = None) -> str:
    if not proxy_prefix:
        return url
    return f"{proxy_prefix}{quote(url, safe='')}"


def fetch_feed_text(
    url: str,
    *,
    proxy_prefix: str | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Download a feed and return its text.

    Args:
        url: Feed location (published CSV export)
        proxy_prefix: Optional pass-through proxy prefix
        client: Reusable httpx client; a short-lived one is created otherwise

    Raises:
        FeedFetchError: On transport failure or non-success HTTP status
    """
    target = build_fetch_url(url, proxy_prefix)
    headers = {"User-Agent": USER_AGENT}
    try:
        if client is not None:
            resp = client.get(target, headers=headers)
        else:
            with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS, follow_redirects=True) as c:
                resp = c.get(target, headers=headers)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        reason = exc.response.reason_phrase
        raise FeedFetchError(f"HTTP {status} {reason}".rstrip()) from exc
    except httpx.HTTPError as exc:
        raise FeedFetchError(f"request failed: {exc}") from exc
    return resp.text
