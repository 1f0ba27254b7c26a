import sys
from pathlib import Path

controller_root = Path(__file__).parent.parent / "controllers" / "mi_explorer"
sys.path.insert(0, str(controller_root))

import numpy as np
import pytest

from belief.occupancy import FREE, OCCUPIED, MapInfo, MapSizeError, OccupancyMap
from belief.oracle import OracleError
from explore.orchestrator import ExplorationOrchestrator, MapNotReadyError
from explore.planner import Phase, PlannerConfig, StepOutcome
from explore.publisher import RecordingSink, Topics


class FixedPeakOracle:
    """Always reports the maximum MI at one cell; optional callback on condition()."""

    def __init__(self, peak=(0, 0), on_condition=None):
        self.peak = peak
        self.on_condition = on_condition

    def reset_mi(self, belief):
        return belief.with_arrays(mi=np.zeros(belief.shape))

    def accrue_mi(self, belief, spatial_fraction, angular_fraction):
        mi = np.array(belief.mi)
        mi[self.peak[1], self.peak[0]] += 1.0
        return belief.with_arrays(mi=mi)

    def compute_mi_beam(self, belief, theta, dtheta, spatial_cursor):
        return self.accrue_mi(belief, spatial_cursor, 0.0), 0.0

    def condition(self, belief, x, y, steps):
        if self.on_condition is not None:
            self.on_condition()
        return belief

    def reset_p_not_measured(self, belief):
        return belief.with_arrays(p_not_measured=np.ones(belief.shape))

    def make_scan(self, belief, x, y, num_beams):
        if not (0 <= x < belief.shape[1] and 0 <= y < belief.shape[0]):
            raise OracleError("outside")
        return np.zeros(num_beams)

    def apply_scan(self, belief, x, y, scan):
        return belief


def free_map(size=3, resolution=1.0):
    info = MapInfo(resolution=resolution, width=size, height=size)
    return OccupancyMap(info=info, data=[0] * (size * size))


def stub_config(**overrides):
    settings = dict(
        angular_steps=2, spatial_steps=1, num_points=1, num_beams=8,
        condition_steps=4, unknown_threshold=0.1,
    )
    settings.update(overrides)
    return PlannerConfig(**settings)


def test_end_to_end_three_by_three():
    sink = RecordingSink()
    orch = ExplorationOrchestrator(stub_config(), oracle=FixedPeakOracle((0, 0)), sink=sink)
    assert orch.on_map(free_map())

    steps = orch.on_seed(1.0, 1.0, max_iterations=2)

    assert steps[0].state.trajectory[0] == (1.0, 1.0)
    assert steps[0].state.position == (0.0, 0.0)
    assert len(steps[0].candidates) == 1
    assert steps[1].state.trajectory == ((1.0, 1.0), (0.0, 0.0))
    assert orch.trajectory == [(1.0, 1.0), (0.0, 0.0)]
    assert orch.phase is Phase.IDLE
    assert not orch.running

    # one refresh for the map plus one per step, six messages each
    assert len(sink.messages) == 6 * 3
    assert sink.latest(Topics().trajectory).points == [(1.5, 1.5), (0.5, 0.5)]


def test_seed_before_map_is_rejected():
    orch = ExplorationOrchestrator(stub_config(), oracle=FixedPeakOracle())
    with pytest.raises(MapNotReadyError):
        orch.on_seed(0.0, 0.0)


def test_seed_outside_map_is_rejected():
    orch = ExplorationOrchestrator(stub_config(), oracle=FixedPeakOracle())
    orch.on_map(free_map())
    with pytest.raises(ValueError):
        orch.on_seed(5.0, 1.0)


def test_first_map_with_bad_size_is_fatal():
    orch = ExplorationOrchestrator(stub_config(), oracle=FixedPeakOracle())
    bad = OccupancyMap(info=MapInfo(resolution=1.0, width=3, height=3), data=[0] * 4)
    with pytest.raises(MapSizeError):
        orch.on_map(bad)


def test_bad_map_update_keeps_previous_map():
    orch = ExplorationOrchestrator(stub_config(), oracle=FixedPeakOracle())
    good = free_map()
    orch.on_map(good)
    before = orch.belief

    bad = OccupancyMap(info=MapInfo(resolution=1.0, width=5, height=5), data=[0] * 9)
    assert orch.on_map(bad) is False
    assert orch.info is good.info
    assert orch.belief is before


def test_cancel_stops_the_loop():
    orch = ExplorationOrchestrator(stub_config(num_points=2), sink=RecordingSink())
    orch.oracle = FixedPeakOracle((0, 0), on_condition=orch.cancel)
    orch.on_map(free_map())

    steps = orch.on_seed(2.0, 2.0)
    assert len(steps) == 1
    assert steps[0].outcome is StepOutcome.CANCELLED
    assert steps[0].state.position == (2.0, 2.0)
    assert not orch.running


def test_new_map_during_planning_cancels_and_replaces():
    orch = ExplorationOrchestrator(stub_config(num_points=2), sink=RecordingSink())
    bigger = free_map(size=5)
    orch.oracle = FixedPeakOracle((0, 0), on_condition=lambda: orch.on_map(bigger))
    orch.on_map(free_map())

    steps = orch.on_seed(1.0, 1.0)
    assert len(steps) == 1
    assert orch.info is bigger.info
    assert orch.belief.shape == (5, 5)


def test_new_map_with_same_metadata_is_not_overwritten_by_the_stale_loop():
    sink = RecordingSink()
    orch = ExplorationOrchestrator(stub_config(num_points=2), sink=sink)
    first = free_map()
    walls = OccupancyMap(info=first.info, data=[100] * 9)
    orch.oracle = FixedPeakOracle((0, 0), on_condition=lambda: orch.on_map(walls))
    orch.on_map(first)

    steps = orch.on_seed(1.0, 1.0)
    assert len(steps) == 1
    assert steps[0].outcome is StepOutcome.CANCELLED
    assert orch.info is first.info
    assert np.all(orch.belief.states == OCCUPIED)
    assert orch.trajectory == []
    # the last refresh is the new map's, not the cancelled step's
    assert list(sink.latest(Topics().states).data) == [100] * 9
    assert sink.latest(Topics().trajectory).points == []


def test_zero_iterations_runs_no_planning():
    oracle = FixedPeakOracle((0, 0), on_condition=lambda: pytest.fail("planner ran"))
    orch = ExplorationOrchestrator(stub_config(), oracle=oracle, sink=RecordingSink())
    orch.on_map(free_map())
    before = orch.belief

    assert orch.on_seed(1.0, 1.0, max_iterations=0) == []
    assert orch.belief is before
    assert orch.trajectory == []
    assert not orch.running


def test_grid_oracle_explores_around_a_wall(tmp_path):
    # 12x12 room, inner wall at x = 6 with a gap on row 10
    size = 12
    data = np.zeros((size, size), dtype=int)
    data[0, :] = data[-1, :] = 100
    data[:, 0] = data[:, -1] = 100
    data[:10, 6] = 100
    info = MapInfo(resolution=0.5, width=size, height=size)

    config = stub_config(angular_steps=4, spatial_steps=1, num_points=2, num_beams=64, condition_steps=8)
    orch = ExplorationOrchestrator(config, sink=RecordingSink())
    orch.on_map(OccupancyMap(info=info, data=data.ravel().tolist()))

    from eval.logger import CsvLogger

    log_path = tmp_path / "run.csv"
    with CsvLogger(str(log_path)) as step_logger:
        steps = orch.on_seed(1.25, 1.25, max_iterations=2, step_logger=step_logger)

    assert steps[0].outcome is StepOutcome.MOVED
    for step in steps:
        for c in step.candidates:
            assert orch.belief.states[c.y, c.x] == FREE
    assert orch.belief.observed.sum() > 0
    assert len(log_path.read_text().strip().splitlines()) == len(steps) + 1
