"""
FastAPI dependencies: sessions, auth guards and service composition.
Tests swap any of these through app.dependency_overrides.
"""

import hmac
import logging
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from config import ConfigurationError, get_settings
from db_engine import get_engine
from services.cache import QuoteCache
from services.market_data import QuoteFetcher
from services.market_view import MarketView
from services.refresh import RefreshJob

logger = logging.getLogger(__name__)

# Shared across requests so live reads within the TTL skip the vendor
_quote_cache: Optional[QuoteCache] = None


def get_db() -> Iterator[Session]:
    db = Session(get_engine())
    try:
        yield db
    finally:
        db.close()


def get_quote_cache() -> QuoteCache:
    global _quote_cache
    if _quote_cache is None:
        _quote_cache = QuoteCache(ttl=get_settings().quote_cache_ttl)
    return _quote_cache


def get_fetcher(cache: QuoteCache = Depends(get_quote_cache)) -> QuoteFetcher:
    return QuoteFetcher.from_settings(cache=cache)


def get_refresh_job() -> RefreshJob:
    # Uncached fetcher; a scheduled refresh must hit the vendor
    return RefreshJob.from_settings()


def get_market_view(fetcher: QuoteFetcher = Depends(get_fetcher)) -> MarketView:
    return MarketView(fetcher=fetcher)


def require_cron_token(authorization: Optional[str] = Header(None)) -> None:
    """
    Guard for scheduler and admin endpoints.

    Raises:
        HTTPException: 500 when CRON_SECRET is unset, 401 on a missing or wrong token
    """
    try:
        secret = get_settings().require_cron_secret()
    except ConfigurationError as e:
        logger.error(f"Refusing protected request: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Protected request without a bearer token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    token = authorization[len("Bearer "):]
    if not hmac.compare_digest(token.encode(), secret.encode()):
        logger.warning("Protected request with an invalid token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """User id set by the upstream auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id
