"""Privacy-aware social search and trending service."""

__version__ = "0.1.0"
