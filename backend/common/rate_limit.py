"""slowapi limiter shared by ``create_app`` and the routers.

Every endpoint gets ``RATE_LIMIT_DEFAULT`` per client address; the schedule
copy endpoint, which writes up to a year of rows per target employee, is
decorated with the tighter ``RATE_LIMIT_COPY``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)
