import os

from slowapi import Limiter
from slowapi.util import get_remote_address

RATE_LIMIT_ENABLED = (os.getenv("RATE_LIMIT_ENABLED", "true") or "true").strip().lower() not in {"0", "false", "off", "no"}

LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "5/minute")
UPLOAD_RATE_LIMIT = os.getenv("UPLOAD_RATE_LIMIT", "10/minute")

limiter = Limiter(key_func=get_remote_address, default_limits=[], enabled=RATE_LIMIT_ENABLED)
