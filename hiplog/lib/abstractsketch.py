from __future__ import annotations
from abc import ABC, abstractmethod
from typing import BinaryIO, Iterable, Union
import xxhash # type: ignore

HASH_BITS = 64
DEFAULT_SEED = 42
_INT_MASK = (1 << HASH_BITS) - 1

class AbstractSketch(ABC):
    """Base class for all sketch types."""

    @abstractmethod
    def add(self, data: bytes) -> None:
        """Add a raw byte sequence to the sketch."""
        pass

    @abstractmethod
    def estimate(self) -> float:
        """Return the current cardinality estimate."""
        pass

    @abstractmethod
    def merge(self, other: 'AbstractSketch') -> None:
        """Merge another sketch into this one."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Reset the sketch to its freshly constructed state."""
        pass

    @abstractmethod
    def dump(self, sink: BinaryIO) -> None:
        """Write the full sketch state to a binary stream."""
        pass

    @abstractmethod
    def restore(self, source: BinaryIO) -> None:
        """Replace the sketch state with one read from a binary stream."""
        pass

    def add_string(self, s: str) -> None:
        """Add a string to the sketch (hashed as UTF-8)."""
        self.add(s.encode('utf-8'))

    def add_int(self, value: int) -> None:
        """Add an integer to the sketch (hashed as 8 little-endian bytes).

        Values are taken modulo 2**64, so negative numbers hash as their
        two's complement and larger integers fold onto their low 64 bits.
        """
        self.add((value & _INT_MASK).to_bytes(8, byteorder='little'))

    def add_batch(self, items: Iterable[Union[bytes, str]]) -> None:
        """Add multiple items to the sketch, in order.

        Args:
            items: Byte strings or text strings to add
        """
        for item in items:
            if isinstance(item, str):
                self.add_string(item)
            else:
                self.add(item)

    # Hash functions - static methods for use by all sketch implementations
    @staticmethod
    def _hash64(data: bytes, seed: int = DEFAULT_SEED) -> int:
        """64-bit hash function for byte strings.

        Args:
            data: Bytes to hash (may be empty)
            seed: Seed for hashing

        Returns:
            64-bit hash value as integer
        """
        return xxhash.xxh64_intdigest(data, seed=seed)

    def hash_bytes(self, data: bytes) -> int:
        """Instance method to hash bytes using the instance's seed."""
        seed = getattr(self, 'seed', DEFAULT_SEED)
        return self._hash64(data, seed=seed)
