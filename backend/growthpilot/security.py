"""JWT helpers.

WHAT:
    Signs and verifies the access tokens that identify the dashboard user.

WHY:
    The overview and report endpoints need the caller's user id to scope
    every query. Login itself happens in the auth service; this module only
    verifies what that service issued (same secret, HS256).

REFERENCES:
    - growthpilot/deps.py::get_current_user
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt

from growthpilot.utils.env import load_env_file

ALGORITHM = "HS256"
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "10080"))

logger = logging.getLogger(__name__)


if not JWT_SECRET:
    # Attempt to load from local .env if running in dev
    load_env_file()
    JWT_SECRET = os.getenv("JWT_SECRET", "")
    JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "10080"))

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is not set. Ensure backend/.env is created or env var is exported.")


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Create a signed JWT for the given subject (the user id)."""
    if expires_minutes is None:
        expires_minutes = JWT_EXPIRES_MINUTES
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes)
    to_encode: Dict[str, Any] = {"sub": subject, "iat": int(now.timestamp()), "exp": int(expire.timestamp())}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT, returning its payload.

    Raises jose.JWTError on failure.
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        logger.info("[AUTH] Rejected invalid or expired token")
        raise
