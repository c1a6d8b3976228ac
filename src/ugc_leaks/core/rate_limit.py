"""Per-address request limiting for public endpoints (slowapi).

The Limiter instance is shared between:
  - ugc_leaks/api/v1/stock.py  (route decorators)
  - ugc_leaks/main.py          (app.state.limiter + exception handler)

Signin and signup are throttled separately by the LoginLimiter service.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ugc_leaks.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)

STOCK_RATE_LIMIT = get_settings().stock_rate_limit
