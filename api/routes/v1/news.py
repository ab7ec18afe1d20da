"""
api/routes/v1/news.py -- Upstream news proxy.

GET /news?q=... returns normalized headlines from the news provider. The
provider key stays on the server; clients never see it or the provider's
response shape.

Upstream failures raise UpstreamUnavailable, which api/main.py turns into a
502 with the standard error envelope -- the handler never crashes on a bad
upstream response.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request

from api.limiter import limiter
from api.models import NewsArticleRow, NewsResponse
from core.config import get_settings
from core.pipeline import get_headlines, normalize_query

# Auth policy:
# - GET /api/v1/news: requires auth -- enforced by the access guard rule /api/v1/news*
router = APIRouter()


@router.get("/news", response_model=NewsResponse)
@limiter.limit("30/minute")
def news(request: Request, q: Optional[str] = Query(default=None, max_length=200)) -> NewsResponse:
    """Return headlines matching q (defaults to "recipes")."""
    articles = get_headlines(q, get_settings(), request.app.state.news_cache)
    return NewsResponse(
        query=normalize_query(q),
        count=len(articles),
        articles=[NewsArticleRow.from_article(a) for a in articles],
    )
