"""Route aggregator - compact route decoding and batch execution."""

from aggregator.aggregator import Aggregator, BatchResult, get_default_aggregator

__version__ = "0.1.0"
__all__ = ["Aggregator", "BatchResult", "get_default_aggregator", "__version__"]
