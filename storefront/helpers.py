import time
import hmac
import math
from typing import Optional
from urllib.parse import urlsplit


# ----------------------------
# Helpers
# ----------------------------
def now_ts() -> float:
    return time.time()


def ct_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


def is_number(value) -> bool:
    # JSON numbers only: bool is an int subclass, NaN/inf never come from a
    # well-formed stats response
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_minor_units(amount) -> int:
    """Major currency units (e.g. dollars) -> minor units (cents)."""
    return int(round(float(amount) * 100))


def origin_of(url: Optional[str]) -> Optional[str]:
    """scheme://host[:port] of a URL, or None if it has no host."""
    if not url:
        return None
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"
