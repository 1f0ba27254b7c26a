from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from belief.oracle import InformationOracle
from belief.state import Belief
from explore.utils import CancellationToken, is_cancelled


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Belief], None]


@dataclass
class SweepResult:
    """
    Attributes:
        belief: belief holding the MI surface accumulated by this sweep
        beams: number of oracle beam calls made
        completed: False if the sweep was cancelled; the surface is then partial
            and must not be used for selection or display
    """

    belief: Belief
    beams: int
    completed: bool


def discretized_sweep(
    oracle: InformationOracle,
    belief: Belief,
    angular_steps: int,
    spatial_steps: int,
    token: Optional[CancellationToken] = None,
    on_angle: Optional[ProgressCallback] = None,
) -> SweepResult:
    """
    Accrues MI over an angular x spatial grid of sample offsets.

    Angular steps form the outer loop and spatial steps the inner one, so a full
    sweep makes exactly angular_steps * spatial_steps accrue_mi calls.
    on_angle is called after each completed angular step (debug drawing).
    """
    if angular_steps < 1 or spatial_steps < 1:
        raise ValueError("angular_steps and spatial_steps must be at least 1")

    belief = oracle.reset_mi(belief)
    beams = 0
    for i in range(angular_steps):
        for j in range(spatial_steps):
            if is_cancelled(token):
                return SweepResult(belief, beams, completed=False)
            belief = oracle.accrue_mi(belief, j / spatial_steps, i / angular_steps)
            beams += 1
        if on_angle is not None:
            on_angle(belief)

    return SweepResult(belief, beams, completed=True)


def continuous_sweep(
    oracle: InformationOracle,
    belief: Belief,
    num_beams: int,
    token: Optional[CancellationToken] = None,
    on_angle: Optional[ProgressCallback] = None,
) -> SweepResult:
    """
    Sweeps theta over [0, 2*pi) in num_beams increments.

    Each angle is fed to compute_mi_beam until the oracle's spatial cursor comes
    back to 0, then theta advances.
    """
    if num_beams < 1:
        raise ValueError("num_beams must be at least 1")

    belief = oracle.reset_mi(belief)
    dtheta = 2.0 * math.pi / num_beams
    beams = 0
    for n in range(num_beams):
        theta = n * dtheta
        cursor = 0.0
        while True:
            if is_cancelled(token):
                return SweepResult(belief, beams, completed=False)
            belief, cursor = oracle.compute_mi_beam(belief, theta, dtheta, cursor)
            beams += 1
            if cursor == 0.0:
                break
        if on_angle is not None:
            on_angle(belief)

    return SweepResult(belief, beams, completed=True)


def run_sweep(
    oracle: InformationOracle,
    belief: Belief,
    config,
    token: Optional[CancellationToken] = None,
    on_angle: Optional[ProgressCallback] = None,
) -> SweepResult:
    # Dispatch on config.sweep ("discretized" or "continuous").
    start = time.perf_counter()
    if config.sweep == "discretized":
        result = discretized_sweep(
            oracle, belief, config.angular_steps, config.spatial_steps, token, on_angle
        )
    elif config.sweep == "continuous":
        result = continuous_sweep(oracle, belief, config.mi_beams, token, on_angle)
    else:
        raise ValueError(f"Unknown sweep strategy: {config.sweep}")

    elapsed = time.perf_counter() - start
    if not result.completed:
        logger.info("sweep cancelled after %d beams (%.3f s)", result.beams, elapsed)
    else:
        height, width = belief.shape
        logger.debug(
            "%s mi sweep over %dx%d grid: %d beams in %.3f s",
            config.sweep, height, width, result.beams, elapsed,
        )
    return result
