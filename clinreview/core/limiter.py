from slowapi import Limiter
from slowapi.util import get_remote_address

from clinreview.core.config import settings

limiter = Limiter(key_func=get_remote_address)

upload_rate = f"{settings.rate_limit_per_minute}/minute"
