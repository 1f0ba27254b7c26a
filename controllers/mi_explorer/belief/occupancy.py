from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


UNKNOWN, FREE, OCCUPIED = -1, 0, 1


class MapSizeError(ValueError):
    """Raised when a map's declared height x width does not match its data."""


@dataclass(frozen=True)
class MapInfo:

    # Spatial metadata shared by the input map and every derived grid.
    # Cells are indexed row-major: row = y, column = x.

    resolution: float  # meters per cell
    width: int
    height: int
    origin_x: float = 0.0
    origin_y: float = 0.0
    frame_id: str = "map"

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    @property
    def size(self) -> int:
        return self.height * self.width


@dataclass
class OccupancyMap:
    """
    Attributes:
        info: spatial metadata of the grid
        data: flat row-major occupancy values in [0, 100], negative = unmeasured
    """

    info: MapInfo
    data: Sequence[int]


def classify(raw: np.ndarray, unknown_threshold: float) -> np.ndarray:
    """
    Converts raw occupancy percentages into the {-1, 0, 1} format.

    Args:
        raw: array of values in [0, 100], negative for unmeasured cells.
        unknown_threshold: half width of the dead-band around 0.5.

    Returns:
        int8 array of the same shape where:
            -1 = UNKNOWN (unmeasured or inside the dead-band)
             0 = FREE
             1 = OCCUPIED
    """
    raw = np.asarray(raw)
    value = raw / 100.0

    states = np.full(raw.shape, UNKNOWN, dtype=np.int8)
    measured = raw >= 0
    states[measured & (value < 0.5 - unknown_threshold)] = FREE
    states[measured & (value > 0.5 + unknown_threshold)] = OCCUPIED
    return states


def grid_from_message(msg: OccupancyMap, unknown_threshold: float) -> np.ndarray:
    """
    Classifies a map message into a (height, width) state grid.

    Raises MapSizeError if the declared dimensions do not match the data.
    """
    data = np.asarray(msg.data, dtype=np.float64)
    if data.ndim != 1 or data.size != msg.info.size:
        raise MapSizeError(
            f"map declares {msg.info.height}x{msg.info.width} cells "
            f"but carries {data.size} values"
        )
    return classify(data.reshape(msg.info.shape), unknown_threshold)


def world_to_grid(x: float, y: float, info: MapInfo) -> Tuple[float, float]:

    # Converts world coordinates (meters) to continuous grid coordinates (x = column, y = row).

    return (x - info.origin_x) / info.resolution, (y - info.origin_y) / info.resolution


def grid_to_world(x: float, y: float, info: MapInfo) -> Tuple[float, float]:

    # Inverse of world_to_grid.

    return info.origin_x + x * info.resolution, info.origin_y + y * info.resolution


def cell_center_to_world(x: float, y: float, info: MapInfo) -> Tuple[float, float]:
    """World coordinates of the centre of the cell containing grid point (x, y)."""
    return grid_to_world(math.floor(x) + 0.5, math.floor(y) + 0.5, info)


def in_bounds(x: float, y: float, info_or_shape) -> bool:
    if isinstance(info_or_shape, MapInfo):
        height, width = info_or_shape.shape
    else:
        height, width = info_or_shape
    return 0 <= x < width and 0 <= y < height
