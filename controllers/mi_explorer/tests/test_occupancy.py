import numpy as np
import pytest

from belief.occupancy import (
    FREE,
    OCCUPIED,
    UNKNOWN,
    MapInfo,
    MapSizeError,
    OccupancyMap,
    cell_center_to_world,
    classify,
    grid_from_message,
    grid_to_world,
    in_bounds,
    world_to_grid,
)
from belief.state import Belief


def test_classify_three_way_partition():
    # 0.25 keeps the band edges exact in binary floating point
    raw = np.array([-1, 0, 24, 25, 50, 75, 76, 100])
    states = classify(raw, unknown_threshold=0.25)
    assert list(states) == [UNKNOWN, FREE, FREE, UNKNOWN, UNKNOWN, UNKNOWN, OCCUPIED, OCCUPIED]


def test_classify_boundaries_belong_to_dead_band():
    raw = np.array([25.0, 75.0])
    assert np.all(classify(raw, 0.25) == UNKNOWN)


def test_classify_is_pure():
    raw = np.random.default_rng(0).integers(-1, 101, size=(20, 20))
    before = raw.copy()
    a = classify(raw, 0.1)
    b = classify(raw, 0.1)
    assert np.array_equal(a, b)
    assert np.array_equal(raw, before)
    assert set(np.unique(a)) <= {UNKNOWN, FREE, OCCUPIED}


def test_zero_threshold_leaves_only_half_unknown():
    states = classify(np.array([49, 50, 51]), 0.0)
    assert list(states) == [FREE, UNKNOWN, OCCUPIED]


def test_grid_from_message_reshapes_row_major():
    info = MapInfo(resolution=0.5, width=3, height=2)
    msg = OccupancyMap(info=info, data=[0, 0, 100, -1, 0, 0])
    states = grid_from_message(msg, 0.1)
    assert states.shape == (2, 3)
    assert states[0, 2] == OCCUPIED
    assert states[1, 0] == UNKNOWN


def test_grid_from_message_rejects_size_mismatch():
    info = MapInfo(resolution=1.0, width=3, height=3)
    with pytest.raises(MapSizeError):
        grid_from_message(OccupancyMap(info=info, data=[0] * 8), 0.1)


def test_world_grid_round_trip():
    info = MapInfo(resolution=0.05, width=100, height=80, origin_x=-2.0, origin_y=1.0)
    gx, gy = world_to_grid(0.5, 2.0, info)
    assert gx == pytest.approx(50.0)
    assert gy == pytest.approx(20.0)
    assert grid_to_world(gx, gy, info) == pytest.approx((0.5, 2.0))


def test_in_bounds():
    info = MapInfo(resolution=1.0, width=4, height=2)
    assert in_bounds(3.9, 1.5, info)
    assert not in_bounds(4.0, 0.0, info)
    assert not in_bounds(0.0, -0.1, (2, 4))


def test_belief_is_read_only():
    belief = Belief.from_states(np.zeros((3, 3), dtype=np.int8))
    assert np.all(belief.p_not_measured == 1.0)
    assert not belief.observed.any()
    with pytest.raises(ValueError):
        belief.mi[0, 0] = 1.0


def test_belief_with_arrays_copies():
    belief = Belief.from_states(np.zeros((2, 2), dtype=np.int8))
    mi = np.ones((2, 2))
    updated = belief.with_arrays(mi=mi)
    mi[0, 0] = 5.0
    assert updated.mi[0, 0] == 1.0
    assert np.all(belief.mi == 0.0)


def test_belief_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        Belief(
            states=np.zeros((2, 2)),
            observed=np.zeros((2, 2), dtype=bool),
            p_not_measured=np.ones((3, 2)),
            mi=np.zeros((2, 2)),
        )


def test_cell_center_to_world_uses_the_containing_cell():
    info = MapInfo(resolution=0.5, width=4, height=4, origin_x=-1.0, origin_y=1.0)
    assert cell_center_to_world(0, 0, info) == pytest.approx((-0.75, 1.25))
    assert cell_center_to_world(2.9, 1.1, info) == pytest.approx((0.25, 1.75))
