"""
HTTP rate limiting for maintenance endpoints.

Search quotas are per actor and enforced inside the search core
(services/rate_limiter.py). This limiter only protects the expensive
maintenance endpoints (sweeps, model install) per client address.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..core.config import MAINTENANCE_RATE_LIMIT_ENABLED, MAINTENANCE_RATE_LIMIT_PER_MINUTE

limiter = Limiter(
    key_func=get_remote_address,
    enabled=MAINTENANCE_RATE_LIMIT_ENABLED
)

maintenance_rate_limit = limiter.limit(f"{MAINTENANCE_RATE_LIMIT_PER_MINUTE}/minute")
