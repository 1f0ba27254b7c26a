import argparse
import logging
import signal
import sys
import time
from pathlib import Path

import numpy as np

# Add current directory to path so we can import from submodules
sys.path.insert(0, str(Path(__file__).parent))

from belief.occupancy import MapInfo, OccupancyMap
from belief.visualize import MatplotlibSink
from configs.config_loader import load_planner_config
from eval.logger import CsvLogger
from explore.orchestrator import ExplorationOrchestrator
from explore.publisher import RecordingSink


def make_demo_map(size: int = 40, resolution: float = 0.1) -> OccupancyMap:
    """Walled room with an obstacle band and an unmeasured corner, as occupancy percentages."""
    data = np.full((size, size), 0, dtype=int)    # free
    data[0, :] = data[-1, :] = 100                # walls
    data[:, 0] = data[:, -1] = 100
    data[size // 3, 5:size - 10] = 100            # obstacle band
    data[-10:-1, -10:-1] = -1                     # never measured
    info = MapInfo(resolution=resolution, width=size, height=size, frame_id="map")
    return OccupancyMap(info=info, data=data.ravel().tolist())


def main(argv=None):
    parser = argparse.ArgumentParser(description="Greedy mutual-information exploration on a demo map")
    parser.add_argument("--profile", default=None, help="planner profile in configs/planner.yaml")
    parser.add_argument("--steps", type=int, default=10, help="outer planning iterations")
    parser.add_argument("--seed", type=float, nargs=2, default=(1.0, 1.0), metavar=("X", "Y"),
                        help="seed point in world meters")
    parser.add_argument("--frames", default=None, help="directory for PNG frames")
    parser.add_argument("--log", default=None, help="CSV run log path")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config, topics = load_planner_config(args.profile)
    sink = MatplotlibSink(args.frames, topics) if args.frames else RecordingSink()
    orch = ExplorationOrchestrator(config, sink=sink, topics=topics)

    # Ctrl-C stops the loop at the next sweep sub-iteration
    signal.signal(signal.SIGINT, lambda *_: orch.cancel())

    print("🚀 Starting MI exploration...")
    orch.on_map(make_demo_map())

    log_path = args.log or f"eval_logs/mi_explorer_{time.strftime('%Y%m%d-%H%M%S')}.csv"
    with CsvLogger(log_path) as step_logger:
        steps = orch.on_seed(args.seed[0], args.seed[1], max_iterations=args.steps, step_logger=step_logger)

    for i, step in enumerate(steps, 1):
        x, y = step.state.position
        print(f"Step {i}: outcome={step.outcome.value} next=({x:.0f}, {y:.0f}) candidates={len(step.candidates)}")

    print(f"🏁 Exploration finished after {len(steps)} steps. Log saved to {log_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
