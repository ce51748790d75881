# Empty file to mark directory as Python package

from .hyperloglog import HyperLogLog
from .hyperloglog_hip import HyperLogLogHIP
from .errors import HiplogError, ConfigurationError, SketchFormatError, UnsupportedFormatError

__all__ = [
    'HyperLogLog',
    'HyperLogLogHIP',
    'HiplogError',
    'ConfigurationError',
    'SketchFormatError',
    'UnsupportedFormatError',
]
