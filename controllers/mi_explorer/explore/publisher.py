# controllers/mi_explorer/explore/publisher.py
"""
Turns planner arrays into display messages.

Grid outputs use the [0, 100] occupancy-grid convention and share the input
map's MapInfo. The raw MI surface goes out unscaled on its own topic.
Overlays are drawn at the world centre of each cell.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Protocol, Sequence, Tuple

import numpy as np

from belief.occupancy import FREE, OCCUPIED, UNKNOWN, MapInfo, cell_center_to_world
from belief.state import Belief


@dataclass(frozen=True)
class Topics:
    mi: str = "mi_map"
    mi_raw: str = "mi"
    p_not_measured: str = "p_not_measured"
    states: str = "map_incomplete"
    mi_points: str = "mi_points"
    trajectory: str = "trajectory"


@dataclass
class GridMessage:
    info: MapInfo
    data: np.ndarray  # flat row-major int8 in [0, 100]


@dataclass
class MIGridMessage:
    info: MapInfo
    data: np.ndarray  # flat row-major float64, unnormalized MI


@dataclass
class PointCloudMessage:
    frame_id: str
    points: List[Tuple[float, float]]


@dataclass
class TrajectoryMarker:
    frame_id: str
    points: List[Tuple[float, float]]
    line_width: float = 3.0
    color: Tuple[float, float, float, float] = (0.0, 0.0, 1.0, 1.0)  # rgba
    kind: str = "LINE_STRIP"


class Sink(Protocol):
    def publish(self, topic: str, message: Any) -> None: ...


@dataclass
class RecordingSink:
    """Keeps every published message in memory, in order."""

    messages: List[Tuple[str, Any]] = field(default_factory=list)

    def publish(self, topic: str, message: Any) -> None:
        self.messages.append((topic, message))

    def latest(self, topic: str) -> Any:
        for name, message in reversed(self.messages):
            if name == topic:
                return message
        raise KeyError(topic)


def normalize_mi(mi: np.ndarray) -> np.ndarray:
    """
    Scales MI by its current maximum.

    Returns values in [0, 1]; an all-zero (or non-positive) surface maps to all
    zeros instead of dividing by zero.
    """
    mi = np.asarray(mi, dtype=np.float64)
    mi_max = float(mi.max()) if mi.size else 0.0
    if mi_max <= 0.0:
        return np.zeros(mi.shape)
    return np.clip(mi / mi_max, 0.0, 1.0)


def mi_to_grid(mi: np.ndarray) -> np.ndarray:
    # Most informative cell reads 0; a surface with no information reads 100 everywhere.
    return np.rint(100.0 * (1.0 - normalize_mi(mi))).astype(np.int8).ravel()


def p_not_measured_to_grid(p_not_measured: np.ndarray) -> np.ndarray:
    p = np.clip(np.asarray(p_not_measured, dtype=np.float64), 0.0, 1.0)
    return np.rint(100.0 * (1.0 - p)).astype(np.int8).ravel()


def states_to_grid(states: np.ndarray) -> np.ndarray:
    states = np.asarray(states)
    out = np.full(states.shape, 50, dtype=np.int8)
    out[states == FREE] = 0
    out[states == OCCUPIED] = 100
    out[states == UNKNOWN] = 50
    return out.ravel()


class VisualizationPublisher:
    """
    Emits the raw MI surface, the MI, p_not_measured and classification grids plus the candidate
    and trajectory overlays on every refresh.
    """

    def __init__(self, sink: Sink, topics: Topics = Topics()) -> None:
        self.sink = sink
        self.topics = topics

    def refresh(
        self,
        info: MapInfo,
        belief: Belief,
        candidates: Sequence = (),
        trajectory: Sequence[Tuple[float, float]] = (),
    ) -> None:
        if belief.shape != info.shape:
            raise ValueError(f"belief shape {belief.shape} does not match map {info.shape}")

        self.sink.publish(
            self.topics.mi_raw,
            MIGridMessage(info, np.array(belief.mi, dtype=np.float64).ravel()),
        )
        self.sink.publish(self.topics.mi, GridMessage(info, mi_to_grid(belief.mi)))
        self.sink.publish(
            self.topics.p_not_measured,
            GridMessage(info, p_not_measured_to_grid(belief.p_not_measured)),
        )
        self.sink.publish(self.topics.states, GridMessage(info, states_to_grid(belief.states)))

        points = [cell_center_to_world(c.x, c.y, info) for c in candidates]
        self.sink.publish(self.topics.mi_points, PointCloudMessage(info.frame_id, points))

        path = [cell_center_to_world(x, y, info) for x, y in trajectory]
        self.sink.publish(self.topics.trajectory, TrajectoryMarker(info.frame_id, path))
