from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

import numpy as np


def _frozen(array: np.ndarray, dtype) -> np.ndarray:
    out = np.array(array, dtype=dtype, copy=True)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class Belief:
    """
    Snapshot of everything the planner knows about the grid.

    Attributes:
        states: (H, W) int8 classification {-1: unknown, 0: free, 1: occupied}
        observed: (H, W) bool, cells covered by a committed scan
        p_not_measured: (H, W) probability each cell is still unmeasured
        mi: (H, W) mutual information surface of the latest sweep

    Arrays are copied and made read-only; oracle operations build a new Belief
    through with_arrays() instead of writing in place.
    """

    states: np.ndarray
    observed: np.ndarray
    p_not_measured: np.ndarray
    mi: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "states", _frozen(self.states, np.int8))
        object.__setattr__(self, "observed", _frozen(self.observed, bool))
        object.__setattr__(self, "p_not_measured", _frozen(self.p_not_measured, np.float64))
        object.__setattr__(self, "mi", _frozen(self.mi, np.float64))

        shapes = {a.shape for a in (self.states, self.observed, self.p_not_measured, self.mi)}
        if len(shapes) != 1:
            raise ValueError(f"belief arrays disagree on shape: {sorted(shapes)}")

    @classmethod
    def from_states(cls, states: np.ndarray) -> "Belief":
        # Fresh belief for a newly accepted map: nothing observed, nothing measured.
        states = np.asarray(states)
        return cls(
            states=states,
            observed=np.zeros(states.shape, dtype=bool),
            p_not_measured=np.ones(states.shape, dtype=np.float64),
            mi=np.zeros(states.shape, dtype=np.float64),
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return self.states.shape

    def with_arrays(self, **arrays: np.ndarray) -> "Belief":
        return replace(self, **arrays)
