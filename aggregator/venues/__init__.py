"""External venue interfaces."""

from aggregator.venues.base import PairFee, PoolSnapshot, PoolStateReader, VenueAdapter

__all__ = ["PairFee", "PoolSnapshot", "PoolStateReader", "VenueAdapter"]
