"""
hiplog - Python Library for HyperLogLog Cardinality Estimation with HIP
"""

from hiplog.lib.hyperloglog import HyperLogLog
from hiplog.lib.hyperloglog_hip import HyperLogLogHIP
from hiplog.lib.errors import (HiplogError, ConfigurationError,
                               SketchFormatError, UnsupportedFormatError)

__version__ = '0.1.0'

__all__ = [
    'HyperLogLog',
    'HyperLogLogHIP',
    'HiplogError',
    'ConfigurationError',
    'SketchFormatError',
    'UnsupportedFormatError',
]
