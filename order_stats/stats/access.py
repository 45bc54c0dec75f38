"""
Access Gate and Key Issuer

The stats endpoint is open only while the API is enabled and the caller
presents the stored key. Keys are 16 random bytes, hex encoded; issuing a new
one replaces (and so invalidates) the previous key.
"""

import hmac
import secrets
from dataclasses import dataclass
from typing import Optional

import structlog

from order_stats.stats.options import SqlOptionsStore, StatsOptions

logger = structlog.get_logger(__name__)

API_KEY_BYTES = 16
API_DISABLED_MESSAGE = "API is currently disabled."
INVALID_KEY_MESSAGE = "Invalid API Key."


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check; ``reason`` is set on denial"""
    allowed: bool
    reason: Optional[str] = None


ALLOW = AccessDecision(allowed=True)


def keys_match(expected: str, supplied: Optional[str]) -> bool:
    """Constant-time key comparison; an empty stored key never matches"""
    if not expected or supplied is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def authorize(options: StatsOptions, supplied_key: Optional[str]) -> AccessDecision:
    """
    Decide whether a caller may read statistics.

    Args:
        options: Options snapshot for the current request
        supplied_key: Value of the caller's X-API-Key header, if any
    """
    if not options.api_enabled:
        return AccessDecision(allowed=False, reason=API_DISABLED_MESSAGE)
    if not keys_match(options.api_key, supplied_key):
        return AccessDecision(allowed=False, reason=INVALID_KEY_MESSAGE)
    return ALLOW


def generate_api_key() -> str:
    """32 hex characters from the OS CSPRNG"""
    return secrets.token_hex(API_KEY_BYTES)


async def issue_new_key(options_store: SqlOptionsStore) -> str:
    """Generate, persist and return a new API key, replacing the old one"""
    key = generate_api_key()
    await options_store.set("api_key", key)
    logger.info("API key rotated", key_suffix=key[-4:])
    return key
