"""Fee result caching."""

from ledger_fees.cache.fee_cache import FeeResultCache, cache_key

__all__ = ["FeeResultCache", "cache_key"]
