from slowapi import Limiter
from slowapi.util import get_remote_address

from homekeep.core.config import settings

# Shared by main.py (middleware) and routers (per-route limits)
limiter = Limiter(key_func=get_remote_address, storage_uri=settings.ratelimit_storage_uri)
