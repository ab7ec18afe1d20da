"""
fetcher.py -- All external data fetching.

The news provider (NewsAPI-compatible "everything" endpoint) is the only
upstream. This module is the single adapter that knows its response shape:
callers get a list of NewsArticle or an UpstreamUnavailable, never raw JSON.
"""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import requests

from core.errors import UpstreamUnavailable
from core.models import NewsArticle

logger = logging.getLogger("recipehub.fetcher")

# Module-level session shared across all fetcher calls for connection pooling.
# max_redirects=3 replaces the requests default of 30 -- this is a known public
# API, 3 hops is generous and protects against SSRF via redirect chains.
_session = requests.Session()
_session.max_redirects = 3

_TIMEOUT_SECONDS = 10

# Article links are rendered as hrefs on signed-in pages. Anything but a plain
# web link (javascript:, data:, relative paths) is refused.
_LINK_SCHEMES = {"http", "https"}


def _web_url(value: Any) -> Optional[str]:
    """Return value stripped if it is an absolute http(s) URL, else None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme.lower() not in _LINK_SCHEMES or not parsed.netloc:
        return None
    return value


def _to_article(raw: dict[str, Any]) -> Optional[NewsArticle]:
    """Map one provider article to a NewsArticle. Returns None for unusable entries.

    NewsAPI marks articles removed by the publisher with the title "[Removed]".
    Articles without an http(s) link are dropped; a non-http(s) image is cleared.
    """
    title = (raw.get("title") or "").strip()
    url = _web_url(raw.get("url"))
    if not title or not url or title == "[Removed]":
        return None
    source = raw.get("source") or {}
    return NewsArticle(
        title=title,
        url=url,
        source=(source.get("name") or "") if isinstance(source, dict) else str(source),
        description=raw.get("description"),
        published_at=raw.get("publishedAt"),
        image_url=_web_url(raw.get("urlToImage")),
    )


def fetch_articles(query: str, api_key: str, api_url: str, page_size: int = 20) -> list[NewsArticle]:
    """Fetch articles matching query from the news provider.

    Raises UpstreamUnavailable when no API key is configured, on any network
    or HTTP error, or when the provider reports a non-"ok" status. The API key
    is sent as a header, never in the URL, so it cannot end up in access logs.
    """
    if not api_key:
        raise UpstreamUnavailable("The news provider is not configured.", detail="NEWS_API_KEY is not set")
    params: dict[str, Any] = {"q": query, "pageSize": page_size, "sortBy": "publishedAt"}
    try:
        resp = _session.get(api_url, params=params, headers={"X-Api-Key": api_key}, timeout=_TIMEOUT_SECONDS)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as e:
        logger.warning("News fetch failed for %r: %s", query, e.__class__.__name__)
        raise UpstreamUnavailable("The news provider could not be reached.") from e
    except ValueError as e:
        logger.warning("News provider returned invalid JSON for %r", query)
        raise UpstreamUnavailable("The news provider returned an unreadable response.") from e

    if data.get("status") != "ok":
        logger.warning("News provider error for %r: %s", query, data.get("code", "unknown"))
        raise UpstreamUnavailable("The news provider rejected the request.", detail=data.get("code"))

    articles: list[NewsArticle] = []
    for raw in data.get("articles") or []:
        if isinstance(raw, dict):
            article = _to_article(raw)
            if article is not None:
                articles.append(article)
    return articles
