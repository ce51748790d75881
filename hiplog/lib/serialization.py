"""
Binary stream codec for hiplog sketches.

Layout (all fields little-endian, fixed width)::

    magic           4 bytes   b"HLLH" (HIP) or b"HLLC" (classic)
    version         uint16
    precision       uint8
    seed            uint64
    register count  uint32
    registers       register count x uint8
    running est.    float64   (HIP only)
    weight sum      float64   (HIP only)

Floating point state is stored as raw IEEE-754 doubles, so a restored
sketch reports exactly the estimate it had when it was dumped.
"""
from __future__ import annotations
import math
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional
import numpy as np # type: ignore
from hiplog.lib.abstractsketch import HASH_BITS
from hiplog.lib.errors import SketchFormatError, UnsupportedFormatError

MAGIC_HIP = b"HLLH"
MAGIC_CLASSIC = b"HLLC"
FORMAT_VERSION = 1

MIN_PRECISION = 4
MAX_PRECISION = 30

_HEADER = struct.Struct('<4sHBQI')
_SCALARS = struct.Struct('<dd')


@dataclass
class SketchState:
    """Everything needed to rebuild a sketch, decoded and validated."""

    precision: int
    seed: int
    registers: np.ndarray
    running_estimate: Optional[float] = None
    weight_sum: Optional[float] = None


def _read_exact(source: BinaryIO, size: int, what: str) -> bytes:
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = source.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    data = b''.join(chunks)
    if len(data) != size:
        raise SketchFormatError(
            f"truncated sketch data: expected {size} bytes of {what}, got {len(data)}")
    return data


def write_state(sink: BinaryIO, magic: bytes, state: SketchState) -> None:
    """Encode a sketch state onto a writable binary stream."""
    registers = np.ascontiguousarray(state.registers, dtype=np.uint8)
    sink.write(_HEADER.pack(magic, FORMAT_VERSION, state.precision,
                            state.seed, registers.shape[0]))
    sink.write(registers.tobytes())
    if state.running_estimate is not None:
        sink.write(_SCALARS.pack(state.running_estimate, state.weight_sum))


def read_state(source: BinaryIO, magic: bytes, with_scalars: bool) -> SketchState:
    """Decode and validate a sketch state from a readable binary stream.

    Args:
        source: Stream positioned at the start of a dumped sketch
        magic: Tag the caller expects (MAGIC_HIP or MAGIC_CLASSIC)
        with_scalars: Whether the HIP running estimate and weight sum follow

    Returns:
        The decoded SketchState

    Raises:
        UnsupportedFormatError: If the magic tag or version is not recognised
        SketchFormatError: If the data is truncated or inconsistent
    """
    tag, version, precision, seed, count = _HEADER.unpack(
        _read_exact(source, _HEADER.size, "header"))
    if tag != magic:
        raise UnsupportedFormatError(
            f"unexpected sketch tag {tag!r}, expected {magic!r}")
    if version != FORMAT_VERSION:
        raise UnsupportedFormatError(
            f"unsupported sketch format version {version} (supported: {FORMAT_VERSION})")
    if not MIN_PRECISION <= precision <= MAX_PRECISION:
        raise SketchFormatError(f"invalid precision {precision} in sketch data")
    if count != 1 << precision:
        raise SketchFormatError(
            f"register count {count} does not match precision {precision}")

    registers = np.frombuffer(
        _read_exact(source, count, "registers"), dtype=np.uint8).copy()
    max_rank = HASH_BITS - precision + 1
    if count and int(registers.max()) > max_rank:
        raise SketchFormatError(
            f"register value {int(registers.max())} exceeds maximum rank {max_rank}")

    state = SketchState(precision=precision, seed=seed, registers=registers)
    if with_scalars:
        running_estimate, weight_sum = _SCALARS.unpack(
            _read_exact(source, _SCALARS.size, "estimator state"))
        if not (math.isfinite(running_estimate) and running_estimate >= 0.0):
            raise SketchFormatError(f"invalid running estimate {running_estimate}")
        if not (math.isfinite(weight_sum) and 0.0 < weight_sum <= count):
            raise SketchFormatError(f"invalid weight sum {weight_sum}")
        state.running_estimate = running_estimate
        state.weight_sum = weight_sum
    return state
