"""Index-fund holdings service: scrape, normalize, cache and serve QQQ holdings."""

__version__ = "0.1.0"
