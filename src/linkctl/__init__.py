"""linkctl — channel routing rules and dynamic record filters."""

__version__ = "0.4.0"
