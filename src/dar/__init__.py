"""Per-workspace development container launcher."""

__version__ = "0.1.0"
