"""Page-view ingestion and hourly rollup backend."""

__version__ = "0.1.0"
