"""
Client access facade for presentation code.

    from app.client import PicksClient
"""
from app.client.cache import ResponseCache
from app.client.picks_client import PicksClient, error_from_response

__all__ = ["PicksClient", "ResponseCache", "error_from_response"]
