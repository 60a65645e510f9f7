"""Optional shared-secret check on the ``X-API-Key`` header."""

from __future__ import annotations

import hashlib
import hmac
import logging

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from tacitus.config import settings
from tacitus.services.metrics import metrics

logger = logging.getLogger(__name__)

_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _hash_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def _valid_key_hashes() -> set[str]:
    """Hashes of the comma-separated ``API_KEYS`` setting.

    A 64-character hex entry is taken as an already-hashed key, anything
    else is hashed here.
    """
    hashes: set[str] = set()
    for k in settings.api_keys.split(","):
        k = k.strip()
        if not k:
            continue
        if len(k) == 64:
            try:
                int(k, 16)
            except ValueError:
                pass
            else:
                hashes.add(k.lower())
                continue
        hashes.add(_hash_key(k))
    return hashes


async def require_api_key(api_key: str | None = Security(_header)) -> str | None:
    """Reject the request unless auth is off or the header carries a known key."""
    if not settings.auth_enabled:
        return None

    if api_key is None:
        metrics.inc_auth_failure()
        raise HTTPException(status_code=401, detail="Missing API key")

    hashed = _hash_key(api_key)
    if not any(hmac.compare_digest(hashed, h) for h in _valid_key_hashes()):
        metrics.inc_auth_failure()
        logger.warning("Rejected request with unknown API key")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return hashed
