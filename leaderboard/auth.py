"""Admin unlock: shared admin code in, signed expiring session token out."""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import Optional

import config
from leaderboard.errors import AdminRequired, ConfigurationError

logger = logging.getLogger(__name__)


def _signing_key(code: str) -> bytes:
    # Changing the admin code invalidates every token issued with the old one
    return hashlib.sha256(f"leaderboard-admin:{code}".encode("utf-8")).digest()


def _sign(code: str, issued_at: int) -> str:
    return hmac.new(_signing_key(code), str(issued_at).encode("ascii"), hashlib.sha256).hexdigest()


def _configured_code() -> str:
    code = config.admin_code()
    if not code:
        raise ConfigurationError("Admin code not configured. Set ENV var ADMIN_CODE or config.ADMIN_CODE.")
    return code


def issue_token(submitted: str, now: Optional[float] = None) -> str:
    """Check `submitted` against the admin code and return a session token."""
    code = _configured_code()
    if not hmac.compare_digest(submitted.encode("utf-8"), code.encode("utf-8")):
        logger.warning("Rejected admin login attempt")
        raise AdminRequired("Invalid admin password")
    issued_at = int(now if now is not None else time.time())
    logger.info("Admin session unlocked")
    return f"{issued_at}.{_sign(code, issued_at)}"


def is_valid(token: Optional[str], now: Optional[float] = None) -> bool:
    if not token or "." not in token:
        return False
    code = config.admin_code()
    if not code:
        return False
    issued, _, signature = token.partition(".")
    try:
        issued_at = int(issued)
    except ValueError:
        return False
    if not hmac.compare_digest(signature, _sign(code, issued_at)):
        return False
    now = now if now is not None else time.time()
    return 0 <= now - issued_at <= config.ADMIN_SESSION_TTL


def require_admin(token: Optional[str]) -> None:
    if not is_valid(token):
        raise AdminRequired()
