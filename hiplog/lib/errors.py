"""Exception types raised by hiplog sketches."""


class HiplogError(Exception):
    """Base class for all hiplog errors."""


class ConfigurationError(HiplogError, ValueError):
    """Invalid sketch configuration or incompatible sketches.

    Raised for an out-of-range precision at construction and for
    merges between sketches with different register counts or seeds.
    """


class SketchFormatError(HiplogError, ValueError):
    """Serialized sketch data is malformed or truncated."""


class UnsupportedFormatError(SketchFormatError):
    """Serialized sketch data has an unknown magic tag or version."""
