import logging
import time
from collections import defaultdict
from decimal import Decimal
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure root logging once for the process"""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def format_currency(amount: Union[Decimal, float, int], currency: Optional[str] = None) -> str:
    """Format an amount with two decimals and a thousands separator, e.g. $1,234.50"""
    code = (currency or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


# Rate limiting
class RateLimiter:
    """Sliding-window request counter keyed by client identifier"""

    def __init__(self, max_requests: int = 100, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.requests = defaultdict(list)
        self._last_sweep = 0.0

    def _prune(self, key: str, now: float):
        recent = [req_time for req_time in self.requests.get(key, [])
                  if now - req_time < self.window_seconds]
        if recent:
            self.requests[key] = recent
        else:
            self.requests.pop(key, None)

    def _sweep(self, now: float):
        """Drop every key whose requests have all left the window"""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self.requests):
            self._prune(key, now)

    def is_allowed(self, key: str) -> bool:
        """Check if request is allowed based on rate limit"""
        now = time.time()
        self._sweep(now)
        self._prune(key, now)

        if len(self.requests.get(key, [])) < self.max_requests:
            self.requests[key].append(now)
            return True
        return False

    def retry_after(self, key: str) -> int:
        """Seconds until the oldest request in the window expires"""
        timestamps = self.requests.get(key)
        if not timestamps:
            return 0
        remaining = self.window_seconds - (time.time() - timestamps[0])
        return max(0, int(remaining + 0.999))

    def remaining(self, key: str) -> int:
        self._prune(key, time.time())
        return max(0, self.max_requests - len(self.requests.get(key, [])))
