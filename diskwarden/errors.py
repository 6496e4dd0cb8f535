"""Exceptions raised by diskwarden."""


class DiskWardenError(Exception):
    """Base class for all diskwarden errors."""


class ConfigurationError(DiskWardenError):
    """Settings are missing or invalid. Fatal at startup."""


class CapacityQueryError(DiskWardenError):
    """The mounted filesystem could not be queried for capacity."""


class SinkError(DiskWardenError):
    """An alert could not be delivered."""
