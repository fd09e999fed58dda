"""Portfolio market data acquisition, merge and scheduling."""

__version__ = "1.0.0"
