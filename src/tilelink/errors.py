"""TileLink error hierarchy.

All custom exceptions inherit from TileLinkError, enabling callers
to catch the base class for blanket error handling or specific
subclasses for targeted recovery.
"""


class TileLinkError(Exception):
    """Base exception for all TileLink errors."""


class ConfigError(TileLinkError):
    """Raised when configuration loading or validation fails."""


class PreconditionError(TileLinkError):
    """Raised when tile input is malformed (bad buffer length, tile size, ids)."""


class ImageLoadError(TileLinkError):
    """Raised when a tileset image cannot be found or decoded."""
