from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)


# --- Password hashing ---
# Lone surrogates are valid in JSON strings; keep them encodable so they fail
# verification like any other wrong password.
_SURROGATES = "surrogatepass"


def _utf8(value: Optional[str]) -> bytes:
    return (value or "").encode("utf-8", _SURROGATES)


def hash_password(password: str) -> str:
    """Hex SHA-256 of the password, unsalted.

    NOTE: kept unsalted for compatibility with hashes already stored in
    users_react. New deployments should move to a salted KDF.
    """
    return hashlib.sha256(_utf8(password)).hexdigest()


def verify_password(password: str, password_hash: str, *, allow_legacy: bool = False) -> bool:
    """Check ``password`` against the stored value.

    With ``allow_legacy`` a stored value equal to the plaintext password is also
    accepted; such accounts predate hashing and should be reset.
    """
    stored = _utf8(password_hash)
    if not stored:
        return False
    if hmac.compare_digest(hash_password(password).encode("ascii"), stored):
        return True
    if allow_legacy and hmac.compare_digest(_utf8(password), stored):
        logger.warning("Plaintext password accepted for a legacy account; rotate it to a hashed password")
        return True
    return False


# --- Password reset tokens ---
def new_reset_token() -> str:
    # 32 random bytes, hex encoded
    return secrets.token_hex(32)


def reset_expiry(ttl_seconds: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(seconds=int(ttl_seconds))


def utcnow() -> datetime:
    # Naive UTC, matching the DateTime column type of users_react
    return datetime.utcnow()
