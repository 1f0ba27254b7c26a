"""
Mutual information oracle.

The planner only talks to the InformationOracle protocol. GridOracle is the
numpy implementation used by the orchestrator: it approximates the beam-based
MI model by marching rays through the classification grid one cell at a time.
"""

from __future__ import annotations

import logging
import math
from typing import Iterator, Protocol, Tuple

import numpy as np

from belief.occupancy import FREE, OCCUPIED, in_bounds
from belief.state import Belief


logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi


class OracleError(RuntimeError):
    """Raised for requests the oracle cannot serve (bad coordinates, fractions, counts)."""


class InformationOracle(Protocol):
    def reset_mi(self, belief: Belief) -> Belief: ...

    def accrue_mi(self, belief: Belief, spatial_fraction: float, angular_fraction: float) -> Belief: ...

    def compute_mi_beam(
        self, belief: Belief, theta: float, dtheta: float, spatial_cursor: float
    ) -> Tuple[Belief, float]: ...

    def condition(self, belief: Belief, x: float, y: float, steps: int) -> Belief: ...

    def reset_p_not_measured(self, belief: Belief) -> Belief: ...

    def make_scan(self, belief: Belief, x: float, y: float, num_beams: int) -> np.ndarray: ...

    def apply_scan(self, belief: Belief, x: float, y: float, scan: np.ndarray) -> Belief: ...


def vacancy(states: np.ndarray) -> np.ndarray:
    """Probability a beam passes through each cell: free 1, occupied 0, unknown 0.5."""
    out = np.full(states.shape, 0.5, dtype=np.float64)
    out[states == FREE] = 1.0
    out[states == OCCUPIED] = 0.0
    return out


def march(
    xs: np.ndarray,
    ys: np.ndarray,
    thetas,
    shape: Tuple[int, int],
    max_steps: int,
) -> Iterator[Tuple[int, np.ndarray, np.ndarray, np.ndarray]]:
    """
    Steps every ray forward one cell length at a time.

    Args:
        xs, ys: ray origins in continuous grid coordinates (x = column, y = row).
        thetas: scalar or per-ray beam angle (radians).
        shape: (height, width) of the grid.
        max_steps: number of samples per ray.

    Yields (k, rows, cols, inside) for k = 1..max_steps. A ray never re-enters
    the grid once it has left.
    """
    height, width = shape
    dx = np.cos(thetas)
    dy = np.sin(thetas)
    for k in range(1, max_steps + 1):
        cols = np.floor(xs + k * dx).astype(np.int64)
        rows = np.floor(ys + k * dy).astype(np.int64)
        inside = (cols >= 0) & (cols < width) & (rows >= 0) & (rows < height)
        yield k, rows, cols, inside


class GridOracle:
    """
    Beam-based MI over a classification grid.

    Args:
        poisson_rate: sensor arrival rate; a beam crossing a cell measures it
            with probability 1 - exp(-poisson_rate).
        beam_independence: if True conditioning beams compose multiplicatively,
            otherwise only the strongest beam per cell counts.
        spatial_samples: spatial slices per beam for compute_mi_beam.
    """

    def __init__(
        self,
        poisson_rate: float = 2.0,
        beam_independence: bool = True,
        spatial_samples: int = 4,
    ) -> None:
        if poisson_rate <= 0:
            raise ValueError("poisson_rate must be positive")
        if spatial_samples < 1:
            raise ValueError("spatial_samples must be at least 1")
        self.poisson_rate = poisson_rate
        self.beam_independence = beam_independence
        self.spatial_samples = spatial_samples

    @property
    def measure_probability(self) -> float:
        return 1.0 - math.exp(-self.poisson_rate)

    # --- MI surface ---

    def reset_mi(self, belief: Belief) -> Belief:
        return belief.with_arrays(mi=np.zeros(belief.shape))

    def accrue_mi(self, belief: Belief, spatial_fraction: float, angular_fraction: float) -> Belief:
        if not (0.0 <= spatial_fraction < 1.0 and 0.0 <= angular_fraction < 1.0):
            raise OracleError(
                f"fractions must lie in [0, 1), got spatial={spatial_fraction} angular={angular_fraction}"
            )
        gain = self._beam_gain(belief, TWO_PI * angular_fraction, spatial_fraction)
        return belief.with_arrays(mi=belief.mi + gain)

    def compute_mi_beam(
        self, belief: Belief, theta: float, dtheta: float, spatial_cursor: float
    ) -> Tuple[Belief, float]:
        if dtheta <= 0:
            raise OracleError(f"dtheta must be positive, got {dtheta}")
        if not 0.0 <= spatial_cursor < 1.0:
            raise OracleError(f"spatial cursor must lie in [0, 1), got {spatial_cursor}")

        gain = self._beam_gain(belief, theta, spatial_cursor) * (dtheta / TWO_PI)

        next_cursor = spatial_cursor + 1.0 / self.spatial_samples
        # Snap to exactly 0 so callers can test for the end of the spatial pass.
        if next_cursor >= 1.0 - 1e-9:
            next_cursor = 0.0
        return belief.with_arrays(mi=belief.mi + gain), next_cursor

    def _beam_gain(self, belief: Belief, theta: float, spatial_offset: float) -> np.ndarray:
        # One parallel family of rays, one ray starting in every cell.
        height, width = belief.shape
        rows, cols = np.indices(belief.shape)
        shift = spatial_offset - 0.5
        xs = cols.ravel() + 0.5 - shift * math.sin(theta)
        ys = rows.ravel() + 0.5 + shift * math.cos(theta)

        vac = vacancy(belief.states).ravel()
        weight = (belief.p_not_measured * ~belief.observed).ravel() * self.measure_probability

        gain = np.zeros(xs.size)
        reach = np.ones(xs.size)
        for _, r, c, inside in march(xs, ys, theta, belief.shape, self._max_steps(belief)):
            reach[~inside] = 0.0
            if not inside.any():
                break
            idx = r[inside] * width + c[inside]
            gain[inside] += reach[inside] * weight[idx]
            reach[inside] *= vac[idx]
        return gain.reshape(height, width)

    # --- Conditioning ---

    def condition(self, belief: Belief, x: float, y: float, steps: int) -> Belief:
        self._check_point(belief, x, y)
        if steps < 1:
            raise OracleError(f"condition needs at least one step, got {steps}")

        width = belief.shape[1]
        thetas = TWO_PI * np.arange(steps) / steps
        xs, ys = self._origins(x, y, steps)
        vac = vacancy(belief.states).ravel()
        p_not = np.array(belief.p_not_measured, dtype=np.float64).ravel()

        reach = np.ones(steps)
        for _, r, c, inside in march(xs, ys, thetas, belief.shape, self._max_steps(belief)):
            reach[~inside] = 0.0
            if not inside.any():
                break
            idx = r[inside] * width + c[inside]
            p_measure = reach[inside] * self.measure_probability
            if self.beam_independence:
                np.multiply.at(p_not, idx, 1.0 - p_measure)
            else:
                np.minimum.at(p_not, idx, 1.0 - p_measure)
            reach[inside] *= vac[idx]

        return belief.with_arrays(p_not_measured=p_not.reshape(belief.shape))

    def reset_p_not_measured(self, belief: Belief) -> Belief:
        return belief.with_arrays(p_not_measured=np.ones(belief.shape))

    # --- Committed scans ---

    def make_scan(self, belief: Belief, x: float, y: float, num_beams: int) -> np.ndarray:
        """
        Ray-casts num_beams evenly spaced beams over [0, 2*pi).

        Returns the range (in cells) of each beam: distance to the first occupied
        cell, or to the last cell inside the grid when nothing is hit.
        """
        self._check_point(belief, x, y)
        if num_beams < 1:
            raise OracleError(f"scan needs at least one beam, got {num_beams}")

        width = belief.shape[1]
        thetas = TWO_PI * np.arange(num_beams) / num_beams
        xs, ys = self._origins(x, y, num_beams)
        occupied = (belief.states == OCCUPIED).ravel()

        ranges = np.zeros(num_beams)
        active = np.ones(num_beams, dtype=bool)
        for k, r, c, inside in march(xs, ys, thetas, belief.shape, self._max_steps(belief)):
            active &= inside
            if not active.any():
                break
            ranges[active] = k
            hit = np.zeros(num_beams, dtype=bool)
            hit[active] = occupied[r[active] * width + c[active]]
            active &= ~hit
        return ranges

    def apply_scan(self, belief: Belief, x: float, y: float, scan: np.ndarray) -> Belief:
        self._check_point(belief, x, y)
        scan = np.asarray(scan, dtype=np.float64)

        width = belief.shape[1]
        num_beams = scan.size
        thetas = TWO_PI * np.arange(num_beams) / max(num_beams, 1)
        xs, ys = self._origins(x, y, num_beams)
        observed = np.array(belief.observed, dtype=bool).ravel()
        observed[int(y) * width + int(x)] = True

        for k, r, c, inside in march(xs, ys, thetas, belief.shape, self._max_steps(belief)):
            covered = inside & (k <= scan)
            if not covered.any():
                break
            observed[r[covered] * width + c[covered]] = True

        logger.debug("scan at (%.1f, %.1f) observed %d cells", x, y, int(observed.sum()))
        return belief.with_arrays(observed=observed.reshape(belief.shape))

    # --- helpers ---

    @staticmethod
    def _check_point(belief: Belief, x: float, y: float) -> None:
        if not in_bounds(x, y, belief.shape):
            raise OracleError(f"point ({x}, {y}) is outside the {belief.shape[0]}x{belief.shape[1]} grid")

    @staticmethod
    def _origins(x: float, y: float, count: int) -> Tuple[np.ndarray, np.ndarray]:
        # Rays leave from the centre of the cell containing (x, y).
        return (
            np.full(count, math.floor(x) + 0.5),
            np.full(count, math.floor(y) + 0.5),
        )

    @staticmethod
    def _max_steps(belief: Belief) -> int:
        height, width = belief.shape
        return int(math.ceil(math.hypot(height, width))) + 1
