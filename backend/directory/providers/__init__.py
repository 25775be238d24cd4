"""External business-data providers."""

from .base import BusinessDataProvider, ProviderAddress, ProviderBusinessRecord, ProviderRating
from .dataforseo import DataForSEOClient

__all__ = [
    "BusinessDataProvider",
    "DataForSEOClient",
    "ProviderAddress",
    "ProviderBusinessRecord",
    "ProviderRating",
]
