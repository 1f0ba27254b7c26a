# controllers/mi_explorer/explore/orchestrator.py

import logging
from typing import List, Optional

from belief.occupancy import MapInfo, MapSizeError, OccupancyMap, grid_from_message, in_bounds, world_to_grid
from belief.oracle import GridOracle, InformationOracle
from belief.state import Belief
from eval.logger import CsvLogger
from eval.metrics import coverage_percent, entropy_proxy
from explore.planner import (
    Phase,
    PlannerConfig,
    PlannerHooks,
    PlannerState,
    PlanningStep,
    StepOutcome,
    iterate_plan,
)
from explore.publisher import RecordingSink, Sink, Topics, VisualizationPublisher
from explore.utils import CancellationToken


logger = logging.getLogger(__name__)


class MapNotReadyError(RuntimeError):
    """Raised when planning is requested before any map has been accepted."""


class ExplorationOrchestrator:
    """
    Glue between:
      - incoming maps and seed points
      - the greedy MI planner and its oracle
      - visualization and evaluation logging

    Input: OccupancyMap messages (on_map), world (x, y) seeds (on_seed)
    Output: grid / point / trajectory messages on the sink, PlanningStep results
    """

    def __init__(
        self,
        config: PlannerConfig,
        oracle: Optional[InformationOracle] = None,
        sink: Optional[Sink] = None,
        topics: Topics = Topics(),
    ):
        self.config = config
        self.oracle = oracle if oracle is not None else GridOracle(
            poisson_rate=config.poisson_rate,
            beam_independence=config.beam_independence,
            spatial_samples=config.spatial_samples,
        )
        self.sink = sink if sink is not None else RecordingSink()
        self.publisher = VisualizationPublisher(self.sink, topics)

        self.info: Optional[MapInfo] = None
        self.belief: Optional[Belief] = None
        self.trajectory: List = []  # every committed viewpoint, grid coords
        self.phase = Phase.IDLE
        self.token = CancellationToken()
        self._running = False
        self._map_generation = 0  # bumped on every accepted map

    @property
    def running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        self.token.cancel()

    def on_map(self, msg: OccupancyMap) -> bool:
        """
        Accepts a new map, replacing all planning state.
        Returns False if the map was rejected and the previous one kept.
        """
        try:
            states = grid_from_message(msg, self.config.unknown_threshold)
        except MapSizeError:
            if self.belief is None:
                raise
            logger.warning("rejecting map update: size mismatch, keeping previous map", exc_info=True)
            return False

        if self._running:
            logger.info("new map while planning, cancelling the active loop")
            self.cancel()

        self.info = msg.info
        self.belief = Belief.from_states(states)
        self._map_generation += 1
        logger.info("accepted %dx%d map", msg.info.height, msg.info.width)

        if self.config.visualize:
            self.publisher.refresh(self.info, self.belief, (), self.trajectory)
        return True

    def on_seed(
        self,
        x: float,
        y: float,
        max_iterations: Optional[int] = None,
        step_logger: Optional[CsvLogger] = None,
    ) -> List[PlanningStep]:
        """
        Runs the planning loop from world point (x, y).

        Stops when cancelled, when no informative free cell is left, or after
        max_iterations outer iterations.
        """
        if self.belief is None or self.info is None:
            raise MapNotReadyError("no map has been received yet")

        gx, gy = world_to_grid(x, y, self.info)
        if not in_bounds(gx, gy, self.info):
            raise ValueError(f"seed point ({x}, {y}) lies outside the map")

        self.token = CancellationToken()
        info = self.info
        generation = self._map_generation
        state = PlannerState(position=(gx, gy), belief=self.belief, trajectory=tuple(self.trajectory))
        hooks = PlannerHooks(on_phase=self._set_phase, on_sweep_progress=self._draw_progress)

        steps: List[PlanningStep] = []
        self._running = True
        try:
            plan = iterate_plan(state, self.oracle, self.config, self.token, hooks)
            while max_iterations is None or len(steps) < max_iterations:
                step = next(plan, None)
                if step is None:
                    break
                steps.append(step)
                if self._map_generation != generation:
                    # A new map arrived mid-run; its belief wins.
                    break
                self.belief = step.state.belief
                self.trajectory = list(step.state.trajectory)

                if self.config.visualize:
                    self.publisher.refresh(info, self.belief, step.candidates, self.trajectory)
                if step_logger is not None:
                    self._log_step(step_logger, len(steps), step)

                if step.outcome is StepOutcome.NO_TARGET:
                    logger.warning("no informative free cell left, stopping")
        finally:
            self._running = False
            self.phase = Phase.IDLE

        return steps

    def _set_phase(self, phase: Phase) -> None:
        self.phase = phase

    def _draw_progress(self, belief: Belief, candidates) -> None:
        if self.config.visualize and self.info is not None:
            self.publisher.refresh(self.info, belief, candidates, self.trajectory)

    def _log_step(self, step_logger: CsvLogger, index: int, step: PlanningStep) -> None:
        belief = step.state.belief
        goal = step.closest
        x, y = step.state.trajectory[-1]
        step_logger.log(
            step=index,
            pose_x=x,
            pose_y=y,
            goal_x=goal.x if goal else "",
            goal_y=goal.y if goal else "",
            goal_mi=goal.mi if goal else "",
            num_candidates=len(step.candidates),
            skipped_rounds=step.skipped_rounds,
            coverage_pct=coverage_percent(belief.observed, belief.states),
            entropy_proxy=entropy_proxy(belief.observed),
            outcome=step.outcome.value,
        )
