# controllers/mi_explorer/explore/planner.py
"""
Greedy next-best-view planner.

One outer iteration from position (x, y):
  1. append (x, y) to the trajectory
  2. scan at (x, y) and fold the scan into the committed belief
  3. reset p_not_measured so the lookahead starts fresh
  4-5. num_points times: sweep MI, pick the best free cell, condition on it
  6. move to whichever lookahead candidate was closest to (x, y)

Positions and candidates are in grid coordinates (x = column, y = row).
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from belief.occupancy import FREE
from belief.oracle import InformationOracle, OracleError
from belief.state import Belief
from explore.sweep import run_sweep
from explore.utils import CancellationToken, is_cancelled


logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class Phase(enum.Enum):
    IDLE = "idle"
    SWEEPING = "sweeping"
    SELECTING = "selecting"
    CONDITIONING = "conditioning"
    COMMITTING = "committing"


class StepOutcome(enum.Enum):
    MOVED = "moved"
    NO_TARGET = "no_target"  # no free cell with positive MI
    CANCELLED = "cancelled"


@dataclass
class PlannerConfig:
    angular_steps: int = 16
    spatial_steps: int = 2
    condition_steps: int = 30
    unknown_threshold: float = 0.1
    poisson_rate: float = 2.0
    beam_independence: bool = True
    num_beams: int = 360     # beams per committed scan
    num_points: int = 5      # lookahead candidates per outer iteration
    sweep: str = "discretized"
    mi_beams: int = 64       # beams per continuous sweep
    spatial_samples: int = 4
    visualize: bool = True
    visualize_more: bool = False


@dataclass(frozen=True)
class Candidate:
    x: int
    y: int
    mi: float

    def distance_to(self, point: Point) -> float:
        return math.hypot(self.x - point[0], self.y - point[1])


@dataclass(frozen=True)
class PlannerState:
    position: Point
    belief: Belief
    trajectory: Tuple[Point, ...] = ()


@dataclass
class PlanningStep:
    """
    Result of one outer iteration.

    Attributes:
        state: planner state after the iteration (position moved only on MOVED)
        candidates: lookahead picks in the order they were made
        closest: the candidate the planner moved to, if any
        outcome: MOVED, NO_TARGET or CANCELLED
        skipped_rounds: lookahead rounds whose conditioning the oracle rejected
    """

    state: PlannerState
    candidates: List[Candidate]
    closest: Optional[Candidate]
    outcome: StepOutcome
    skipped_rounds: int = 0


@dataclass
class PlannerHooks:
    on_phase: Optional[Callable[[Phase], None]] = None
    on_sweep_progress: Optional[Callable[[Belief, List[Candidate]], None]] = None

    def phase(self, phase: Phase) -> None:
        if self.on_phase is not None:
            self.on_phase(phase)


def select_target(belief: Belief) -> Optional[Candidate]:
    """
    Argmax of MI over free cells.

    Ties resolve to the first cell in row-major order. Returns None when no free
    cell has MI > 0.
    """
    masked = np.where(belief.states == FREE, belief.mi, -np.inf).ravel()
    if masked.size == 0:
        return None
    best = int(np.argmax(masked))
    mi_max = float(masked[best])
    if not mi_max > 0.0:
        return None
    width = belief.shape[1]
    return Candidate(x=best % width, y=best // width, mi=mi_max)


def plan_step(
    state: PlannerState,
    oracle: InformationOracle,
    config: PlannerConfig,
    token: Optional[CancellationToken] = None,
    hooks: Optional[PlannerHooks] = None,
) -> PlanningStep:
    hooks = hooks or PlannerHooks()
    start = state.position
    x, y = start
    trajectory = state.trajectory + (start,)

    # Committed measurement at the current position.
    hooks.phase(Phase.CONDITIONING)
    scan = oracle.make_scan(state.belief, x, y, config.num_beams)
    belief = oracle.apply_scan(state.belief, x, y, scan)
    belief = oracle.reset_p_not_measured(belief)

    candidates: List[Candidate] = []
    closest: Optional[Candidate] = None
    closest_dist = math.inf
    skipped = 0

    def finish(outcome: StepOutcome, position: Point) -> PlanningStep:
        return PlanningStep(
            state=PlannerState(position=position, belief=belief, trajectory=trajectory),
            candidates=candidates,
            closest=closest if outcome is StepOutcome.MOVED else None,
            outcome=outcome,
            skipped_rounds=skipped,
        )

    on_angle = None
    if config.visualize_more and hooks.on_sweep_progress is not None:
        def on_angle(partial: Belief) -> None:
            hooks.on_sweep_progress(partial, list(candidates))

    for round_idx in range(config.num_points):
        if is_cancelled(token):
            return finish(StepOutcome.CANCELLED, start)

        hooks.phase(Phase.SWEEPING)
        result = run_sweep(oracle, belief, config, token, on_angle)
        if not result.completed:
            # Keep the last fully swept belief.
            return finish(StepOutcome.CANCELLED, start)
        belief = result.belief

        hooks.phase(Phase.SELECTING)
        target = select_target(belief)
        if target is None:
            logger.warning("no informative free cell in lookahead round %d", round_idx)
            break
        logger.debug("max mi %.4f @ (%d, %d)", target.mi, target.x, target.y)

        candidates.append(target)
        dist = target.distance_to(start)
        if dist < closest_dist:
            closest_dist = dist
            closest = target

        hooks.phase(Phase.CONDITIONING)
        try:
            belief = oracle.condition(belief, target.x, target.y, config.condition_steps)
        except OracleError as exc:
            skipped += 1
            logger.warning("skipping lookahead round %d: %s", round_idx, exc)

    if closest is None:
        return finish(StepOutcome.NO_TARGET, start)

    hooks.phase(Phase.COMMITTING)
    return finish(StepOutcome.MOVED, (float(closest.x), float(closest.y)))


def iterate_plan(
    state: PlannerState,
    oracle: InformationOracle,
    config: PlannerConfig,
    token: Optional[CancellationToken] = None,
    hooks: Optional[PlannerHooks] = None,
) -> Iterator[PlanningStep]:
    """
    Yields one PlanningStep per outer iteration.

    Runs until the token is cancelled or a step finds no target; the caller
    decides how many steps to take.
    """
    while not is_cancelled(token):
        step = plan_step(state, oracle, config, token, hooks)
        yield step
        if step.outcome is not StepOutcome.MOVED:
            return
        state = step.state
