"""
API Package for Uptime Watch

aiohttp JSON API over the target store and the monitoring scheduler.
"""

from api.server import ApiServer, error_middleware

__all__ = [
    "ApiServer",
    "error_middleware",
]
