"""New Relic query backend."""

from .client import REGION_ENDPOINTS, Entity, NerdGraphClient, QueryClient

__all__ = ["Entity", "NerdGraphClient", "QueryClient", "REGION_ENDPOINTS"]
