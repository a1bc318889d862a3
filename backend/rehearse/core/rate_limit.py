"""Request rate limiting shared by the routers."""

from slowapi import Limiter
from slowapi.util import get_remote_address


limiter = Limiter(key_func=get_remote_address)

# Rate limit configuration
RATE_LIMIT_AUTH = "20/minute"  # sign-in, sign-up and password reset
RATE_LIMIT_GENERATION = "30/hour"  # tailored question generation
