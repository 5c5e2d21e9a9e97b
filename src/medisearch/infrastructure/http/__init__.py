"""HTTP gateway to the search endpoints."""

from .client import SearchEndpointClient, unwrap_payload

__all__ = ["SearchEndpointClient", "unwrap_payload"]
