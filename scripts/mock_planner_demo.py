import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "controllers" / "mi_explorer"))

import numpy as np
from belief.occupancy import MapInfo, OccupancyMap
from configs.config_loader import load_planner_config
from eval.metrics import coverage_percent, entropy_proxy
from explore.orchestrator import ExplorationOrchestrator

# build a simple synthetic map (occupancy percentages)
g = np.full((30, 30), -1, dtype=int)   # unmeasured
g[5:25, 5:25] = 0                      # free
g[10:12, 10:20] = 100                  # obstacle band

config, topics = load_planner_config("quick")
orch = ExplorationOrchestrator(config, topics=topics)
orch.on_map(OccupancyMap(MapInfo(resolution=0.05, width=30, height=30), g.ravel().tolist()))

steps = orch.on_seed(0.75, 0.75, max_iterations=3)  # roughly center
for i, step in enumerate(steps, 1):
    belief = step.state.belief
    print(
        f"step={i} outcome={step.outcome.value} "
        f"goal={step.state.position} candidates={[(c.x, c.y) for c in step.candidates]} "
        f"coverage%: {coverage_percent(belief.observed, belief.states):.2f}  "
        f"entropy: {entropy_proxy(belief.observed):.2f}"
    )
