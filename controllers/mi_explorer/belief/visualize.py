# Rendering of published planner frames with Matplotlib

from pathlib import Path
from typing import Any, Dict, Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from explore.publisher import GridMessage, PointCloudMessage, Topics, TrajectoryMarker


def _extent(msg: GridMessage):
    info = msg.info
    return [
        info.origin_x,
        info.origin_x + info.width * info.resolution,
        info.origin_y,
        info.origin_y + info.height * info.resolution,
    ]


def plot_frame(
    frame: Dict[str, Any],
    topics: Topics = Topics(),
    title: str = "MI Exploration",
    output_path: Optional[str] = None,
) -> None:
    """
    Draws the classification, MI and p_not_measured grids side by side with the
    candidate points and trajectory on top.
    Style follows the SLAM debug plots:
    - Grids: gray_r colormap over [0, 100] (dark = high value)
    - Candidates: red dots
    - Trajectory: blue line
    """
    panels = [
        (topics.states, "Map"),
        (topics.mi, "Mutual information"),
        (topics.p_not_measured, "Measured"),
    ]
    fig, axes = plt.subplots(1, len(panels), figsize=(15, 5))

    points: Optional[PointCloudMessage] = frame.get(topics.mi_points)
    trajectory: Optional[TrajectoryMarker] = frame.get(topics.trajectory)

    for ax, (topic, label) in zip(axes, panels):
        msg: Optional[GridMessage] = frame.get(topic)
        if msg is None:
            ax.set_axis_off()
            continue
        image = np.asarray(msg.data, dtype=float).reshape(msg.info.shape)
        ax.imshow(image, cmap="gray_r", origin="lower", extent=_extent(msg), vmin=0.0, vmax=100.0)

        if trajectory is not None and trajectory.points:
            tx, ty = zip(*trajectory.points)
            ax.plot(tx, ty, "b-", linewidth=1.5, label="Trajectory")
        if points is not None and points.points:
            px, py = zip(*points.points)
            ax.scatter(px, py, c="red", s=15, zorder=10, label="Candidates")

        ax.set_title(label)
        ax.set_xlabel("X (m)")
        ax.set_ylabel("Y (m)")
        ax.set_aspect("equal")

    fig.suptitle(title)

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output_path, dpi=120, bbox_inches="tight")

    plt.close(fig)  # Close to free memory


class MatplotlibSink:
    """
    Sink that keeps the latest message per topic and writes a PNG per frame.

    A frame is complete when the trajectory marker (the last message of a
    refresh) arrives.
    """

    def __init__(self, output_dir: str, topics: Topics = Topics(), prefix: str = "frame") -> None:
        self.output_dir = Path(output_dir)
        self.topics = topics
        self.prefix = prefix
        self.latest: Dict[str, Any] = {}
        self.frames_written = 0

    def publish(self, topic: str, message: Any) -> None:
        self.latest[topic] = message
        if topic == self.topics.trajectory:
            path = self.output_dir / f"{self.prefix}_{self.frames_written:04d}.png"
            plot_frame(self.latest, self.topics, title=f"Frame {self.frames_written}", output_path=str(path))
            self.frames_written += 1
