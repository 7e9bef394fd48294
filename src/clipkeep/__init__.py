"""clipkeep - clipboard history with a debounced JSON store."""

__version__ = "0.1.0"
