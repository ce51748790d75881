#!/usr/bin/env python3
"""
HyperLogLog with historic inverse probability (HIP) estimation.

Instead of scanning the registers on every estimate, the sketch keeps a
running total. Whenever an element raises one of the registers, the total
grows by the inverse of the probability that a new element would have
raised any register at that moment (num_registers / weight_sum). Summed
over the insertion history this gives an unbiased estimate that needs no
small or large range corrections.

The running total depends on insertion order: two sketches fed the same
set in a different order end up with identical registers but slightly
different estimates. That is expected.
"""

import math
from typing import Optional
import numpy as np # type: ignore
from hiplog.lib.hyperloglog import HyperLogLog
from hiplog.lib.serialization import MAGIC_HIP, SketchState


class HyperLogLogHIP(HyperLogLog):
    """
    HyperLogLog sketch with an incrementally maintained HIP estimate.

    State on top of the classic register array:
    - running_estimate: the current cardinality estimate
    - weight_sum: sum of 2**-register over all registers, kept in step with
      the registers so each insert costs O(1)

    After a merge the insertion history of the union is unknown, so both
    scalars are rebuilt from the merged registers (weight_sum exactly,
    running_estimate with the classic harmonic-mean estimator). Later
    inserts continue incrementally from that baseline.
    """

    _MAGIC = MAGIC_HIP
    _HAS_SCALARS = True

    def __init__(self,
                 precision: int = 8,
                 seed: Optional[int] = None,
                 debug: bool = False):
        super().__init__(precision, seed, debug)
        self.running_estimate = 0.0
        self.weight_sum = float(self.num_registers)

    def add(self, data: bytes) -> None:
        """Add a byte sequence and update the running estimate."""
        bucket, rank = self._bucket_and_rank(data)
        old = int(self.registers[bucket])
        if rank > old:
            # weight of this observation uses the probability before the update
            self.running_estimate += self.num_registers / self.weight_sum
            self.weight_sum += math.ldexp(1.0, -rank) - math.ldexp(1.0, -old)
            self.registers[bucket] = rank

    def estimate(self) -> float:
        """Return the running HIP estimate."""
        return self.running_estimate

    def merge(self, other: HyperLogLog) -> None:
        """Merge another sketch into this one and rebuild the estimator.

        Args:
            other: HyperLogLog or HyperLogLogHIP sketch with the same
                   number of registers and seed; left unmodified

        Raises:
            TypeError: If other is not a HyperLogLog sketch
            ConfigurationError: If the register counts or seeds differ
        """
        self._check_mergeable(other)
        # build the merged state aside so a failure leaves the sketch untouched
        registers = np.maximum(self.registers, other.registers)
        weight_sum = self._register_weight_sum(registers)
        running_estimate = self._harmonic_estimate(registers)

        self.registers = registers
        self.weight_sum = weight_sum
        self.running_estimate = running_estimate
        if self.debug:
            print(f"DEBUG: merged baseline estimate={self.running_estimate:.1f}, weight_sum={self.weight_sum:.3f}")

    def clear(self) -> None:
        """Reset registers and estimator to the construction state."""
        super().clear()
        self.running_estimate = 0.0
        self.weight_sum = float(self.num_registers)

    def _state(self) -> SketchState:
        state = super()._state()
        state.running_estimate = self.running_estimate
        state.weight_sum = self.weight_sum
        return state

    def _apply_state(self, state: SketchState) -> None:
        super()._apply_state(state)
        self.running_estimate = state.running_estimate
        self.weight_sum = state.weight_sum
