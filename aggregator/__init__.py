"""Quote aggregator: best-rate discovery with oracle cross-validation."""

from aggregator.engine import QuoteEngine, build_engine, get_default_engine
from aggregator.slippage import SlippagePolicy

__version__ = "0.1.0"
__all__ = ["QuoteEngine", "SlippagePolicy", "build_engine", "get_default_engine", "__version__"]
