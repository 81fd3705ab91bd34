"""Process-lifetime stores: weight cache and extraction tickets."""

from storage.tickets import ExtractionTicket, ExtractionTicketStore
from storage.weight_cache import CacheEntry, WeightCache

__all__ = [
    "CacheEntry",
    "ExtractionTicket",
    "ExtractionTicketStore",
    "WeightCache",
]
