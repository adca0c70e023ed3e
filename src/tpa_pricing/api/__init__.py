"""Backend access: the REST client and latest-only search helpers."""

from tpa_pricing.api.client import PricingApiClient, PricingApiError, ProcedureSearchFilters
from tpa_pricing.api.search import LatestOnlySearch, SearchSuperseded

__all__ = [
    "LatestOnlySearch",
    "PricingApiClient",
    "PricingApiError",
    "ProcedureSearchFilters",
    "SearchSuperseded",
]
