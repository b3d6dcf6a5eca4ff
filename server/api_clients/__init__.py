"""
Third-party REST adapters, each rate limited through its own queue.
"""
from api_clients.base import RateLimitedApiClient
from api_clients.edsm import EDSMClient
from api_clients.inara import InaraClient

__all__ = [
    "EDSMClient",
    "InaraClient",
    "RateLimitedApiClient",
]
