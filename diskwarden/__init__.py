"""diskwarden - local disk usage alerts and stale temp file cleanup."""

__version__ = "0.1.0"
