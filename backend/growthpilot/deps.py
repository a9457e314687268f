"""Dependency providers and settings management."""

from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security import decode_token
from .services.overview_service import OverviewService
from .services.revenue import ProxyRevenueDeriver
from .telemetry.sentry import set_user_context
from .utils.cache import TTLCache


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # Day boundary for "today" / "this month" on the overview
    REPORTING_TIMEZONE: str = "Europe/Istanbul"

    # Revenue proxy: sales revenue = purchases * average order value
    DEFAULT_AVERAGE_ORDER_VALUE: float = 100.0

    # Notification thresholds
    ROAS_ALERT_THRESHOLD: float = 1.5
    BUDGET_ALERT_MULTIPLIER: float = 1.2

    TREND_WINDOW_DAYS: int = 30
    REPORT_LOCALE: str = "tr"

    # Overview/trends cache lifetime; 0 disables reuse
    OVERVIEW_CACHE_TTL_SECONDS: int = 300

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_current_user(
    db: Session = Depends(get_db),
    access_token: Optional[str] = Cookie(default=None, alias="access_token"),
    authorization: Optional[str] = Header(default=None),
) -> User:
    """Resolve the current user from the `access_token` cookie or Authorization header.

    Either value is expected in the form "Bearer <jwt>" with the user id as `sub`.
    """
    raw = access_token or authorization
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    # Remove optional "Bearer " prefix
    token = raw[len("Bearer "):] if raw.startswith("Bearer ") else raw

    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    try:
        user_id = UUID(str(subject))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    set_user_context(user_id=str(user.user_id), email=user.email)
    return user


@lru_cache()
def get_overview_cache() -> TTLCache:
    """Process-wide overview cache, shared by requests and sync runs."""
    return TTLCache(ttl_seconds=get_settings().OVERVIEW_CACHE_TTL_SECONDS)


def get_overview_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    cache: TTLCache = Depends(get_overview_cache),
) -> OverviewService:
    """Build a request-scoped OverviewService from settings."""
    return OverviewService(
        db,
        revenue_deriver=ProxyRevenueDeriver(settings.DEFAULT_AVERAGE_ORDER_VALUE),
        timezone=settings.REPORTING_TIMEZONE,
        cache=cache,
    )
