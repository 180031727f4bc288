import time
from typing import Any, Dict, Optional, Tuple

from rxcalc.core.settings import CACHE_TTL_S

# key (full request URL) -> (stored_at, payload)
RESPONSE_CACHE: Dict[str, Tuple[float, Any]] = {}

def _ttl(ttl_s: Optional[float]) -> float:
    return CACHE_TTL_S if ttl_s is None else ttl_s

def get_cached(key: str, ttl_s: Optional[float] = None) -> Optional[Any]:
    entry = RESPONSE_CACHE.get(key)
    if entry is None:
        return None
    stored_at, payload = entry
    if time.monotonic() - stored_at < _ttl(ttl_s):
        return payload
    RESPONSE_CACHE.pop(key, None)
    return None

def prune_expired(ttl_s: Optional[float] = None) -> int:
    """Drop every expired entry; returns how many were removed."""
    now = time.monotonic()
    expired = [k for k, (stored_at, _) in RESPONSE_CACHE.items() if now - stored_at >= _ttl(ttl_s)]
    for k in expired:
        RESPONSE_CACHE.pop(k, None)
    return len(expired)

def set_cached(key: str, payload: Any, ttl_s: Optional[float] = None) -> None:
    # keys that are never read again would otherwise live forever
    prune_expired(ttl_s)
    RESPONSE_CACHE[key] = (time.monotonic(), payload)

def clear_cache() -> None:
    RESPONSE_CACHE.clear()
