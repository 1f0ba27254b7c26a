import numpy as np

from belief.occupancy import OCCUPIED


def explored_area_m2(observed: np.ndarray, resolution: float) -> float:
    """Calculates absolute area covered by committed scans in square meters."""
    return float(np.count_nonzero(observed)) * (resolution ** 2)


def coverage_percent(observed: np.ndarray, states: np.ndarray = None) -> float:
    """
    Calculates coverage percentage.
    If states is provided, occupied cells are excluded from the total, since
    scans only ever reach their surface.
    Otherwise, falls back to % of total grid.
    """
    observed = np.asarray(observed, dtype=bool)
    if states is not None:
        reachable = np.asarray(states) != OCCUPIED
        total = np.count_nonzero(reachable)
        if total == 0:
            return 100.0
        return 100.0 * np.count_nonzero(observed & reachable) / total
    if observed.size == 0:
        return 100.0
    return 100.0 * np.count_nonzero(observed) / observed.size


def entropy_proxy(observed: np.ndarray) -> float:
    # Lower is better; simple proxy: fraction of cells no committed scan has reached
    observed = np.asarray(observed, dtype=bool)
    if observed.size == 0:
        return 0.0
    return float((~observed).mean())
