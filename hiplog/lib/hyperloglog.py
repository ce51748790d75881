from __future__ import annotations
import math
from typing import BinaryIO, Optional, Tuple
import numpy as np # type: ignore
from hiplog.lib.abstractsketch import AbstractSketch, DEFAULT_SEED, HASH_BITS
from hiplog.lib.errors import ConfigurationError
from hiplog.lib.serialization import (MAGIC_CLASSIC, MAX_PRECISION, MIN_PRECISION,
                                      SketchState, read_state, write_state)

class HyperLogLog(AbstractSketch):
    """Classic HyperLogLog sketch.

    The estimate is recomputed from the register array on every call using
    the bias-corrected harmonic mean, with linear counting for small
    cardinalities and the large range correction for the 64-bit hash space.
    """

    _MAGIC = MAGIC_CLASSIC
    _HAS_SCALARS = False

    def __init__(self,
                 precision: int = 8,
                 seed: Optional[int] = None,
                 debug: bool = False):
        """Initialize HyperLogLog sketch.

        Args:
            precision: Number of bits for register indexing (4-30).
                      The sketch keeps 2**precision registers.
            seed: Seed for hashing (defaults to 42, never random)
            debug: Whether to print debug information

        Raises:
            ConfigurationError: If precision is outside [4, 30] or the seed
                                is not an unsigned 64-bit integer
        """
        super().__init__()

        if not MIN_PRECISION <= precision <= MAX_PRECISION:
            raise ConfigurationError(
                f"bit width must be in the range [{MIN_PRECISION},{MAX_PRECISION}], got {precision}")

        self.seed = seed if seed is not None else DEFAULT_SEED
        if not 0 <= self.seed < 1 << HASH_BITS:
            raise ConfigurationError(f"seed must be an unsigned 64-bit integer, got {self.seed}")
        self.debug = debug
        self._configure(precision)
        self.registers = np.zeros(self.num_registers, dtype=np.uint8)

    def _configure(self, precision: int) -> None:
        """Set precision and everything derived from it."""
        self.precision = precision
        self.num_registers = 1 << precision
        self._rank_bits = HASH_BITS - precision
        self._rank_mask = (1 << self._rank_bits) - 1
        self.max_rank = self._rank_bits + 1

        # Calculate alpha_mm (bias correction factor)
        if self.num_registers == 16:
            self.alpha_mm = 0.673
        elif self.num_registers == 32:
            self.alpha_mm = 0.697
        elif self.num_registers == 64:
            self.alpha_mm = 0.709
        else:
            self.alpha_mm = 0.7213 / (1 + 1.079 / self.num_registers)

    def _bucket_and_rank(self, data: bytes) -> Tuple[int, int]:
        """Split the hash of data into a register index and a rank.

        The top `precision` bits select the register; the rank is one plus
        the number of leading zeros in the remaining bits.
        """
        hash_val = self.hash_bytes(data)
        bucket = hash_val >> self._rank_bits
        remainder = hash_val & self._rank_mask
        rank = self._rank_bits - remainder.bit_length() + 1
        return bucket, rank

    def add(self, data: bytes) -> None:
        """Add a byte sequence to the sketch."""
        bucket, rank = self._bucket_and_rank(data)
        if rank > self.registers[bucket]:
            self.registers[bucket] = rank

    def register_size(self) -> int:
        """Number of registers (2**precision)."""
        return self.num_registers

    def is_empty(self) -> bool:
        """Check if sketch is empty."""
        return not self.registers.any()

    def _register_weight_sum(self, registers: Optional[np.ndarray] = None) -> float:
        """Sum of 2**-register over all registers."""
        if registers is None:
            registers = self.registers
        return float(np.sum(np.exp2(-registers.astype(np.float64))))

    def _harmonic_estimate(self, registers: Optional[np.ndarray] = None) -> float:
        """Bias-corrected harmonic mean estimate of a register array.

        Args:
            registers: Registers to estimate from (defaults to this sketch's)
        """
        if registers is None:
            registers = self.registers
        m = float(self.num_registers)
        if not registers.any():
            return 0.0

        raw_estimate = self.alpha_mm * m * m / self._register_weight_sum(registers)

        # Small range correction
        if raw_estimate <= 2.5 * m:
            v = int(np.count_nonzero(registers == 0))
            if v > 0:
                return m * math.log(m / float(v))

        # Large range correction
        max_value = float(1 << HASH_BITS)
        if raw_estimate > max_value / 30.0:
            log_arg = 1.0 - raw_estimate / max_value
            # saturated registers: the hash space is exhausted
            if log_arg <= 0.0:
                return max_value
            raw_estimate = -max_value * math.log(log_arg)

        return raw_estimate

    def estimate(self) -> float:
        """Estimate the cardinality of the multiset."""
        return self._harmonic_estimate()

    def _check_mergeable(self, other: 'HyperLogLog') -> None:
        if not isinstance(other, HyperLogLog):
            raise TypeError("Can only merge with another HyperLogLog sketch")
        if self.num_registers != other.num_registers:
            raise ConfigurationError(
                f"number of registers doesn't match: {self.num_registers} != {other.num_registers}")
        if self.seed != other.seed:
            raise ConfigurationError(
                f"hash seeds don't match: {self.seed} != {other.seed}")

    def merge(self, other: 'HyperLogLog') -> None:
        """Merge another HLL sketch into this one.

        This modifies the current sketch by taking the element-wise maximum of
        its registers with the other sketch's registers. The other sketch is
        left unchanged.

        Args:
            other: Another HyperLogLog sketch to merge into this one

        Raises:
            TypeError: If other is not a HyperLogLog sketch
            ConfigurationError: If the register counts or seeds differ
        """
        self._check_mergeable(other)
        # Take element-wise maximum and modify self.registers in-place
        np.maximum(self.registers, other.registers, out=self.registers)

    def clear(self) -> None:
        """Zero every register."""
        self.registers.fill(0)

    def _state(self) -> SketchState:
        return SketchState(precision=self.precision, seed=self.seed,
                           registers=self.registers)

    def _apply_state(self, state: SketchState) -> None:
        self.seed = state.seed
        self._configure(state.precision)
        self.registers = state.registers

    def dump(self, sink: BinaryIO) -> None:
        """Write the sketch to a binary stream.

        Args:
            sink: Writable binary stream owned by the caller
        """
        write_state(sink, self._MAGIC, self._state())

    def restore(self, source: BinaryIO) -> None:
        """Replace this sketch with one read from a binary stream.

        The stream is fully decoded and validated before anything is
        assigned, so on error the sketch keeps its previous state.

        Args:
            source: Readable binary stream owned by the caller

        Raises:
            SketchFormatError: If the data is truncated or inconsistent
            UnsupportedFormatError: If the tag or version is not recognised
        """
        state = read_state(source, self._MAGIC, self._HAS_SCALARS)
        self._apply_state(state)
        if self.debug:
            print(f"DEBUG: restored precision={self.precision}, seed={self.seed}, estimate={self.estimate():.1f}")

    def write(self, filepath: str) -> None:
        """Write sketch to file in binary format.

        Args:
            filepath: Path to output file
        """
        with open(filepath, 'wb') as f:
            self.dump(f)

    @classmethod
    def load(cls, filepath: str, debug: bool = False) -> 'HyperLogLog':
        """Load sketch from file in binary format.

        Args:
            filepath: Path to input file
            debug: Whether the loaded sketch prints debug information

        Returns:
            Sketch object loaded from file, with the stored precision
        """
        with open(filepath, 'rb') as f:
            state = read_state(f, cls._MAGIC, cls._HAS_SCALARS)
        sketch = cls(precision=state.precision, seed=state.seed, debug=debug)
        sketch._apply_state(state)
        return sketch
