import csv
import time
from pathlib import Path


class CsvLogger:
    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self.f = self.path.open("w", newline="")

        self.w = csv.DictWriter(
            self.f,
            fieldnames=[
                "t",
                "step",
                "pose_x",
                "pose_y",
                "goal_x",
                "goal_y",
                "goal_mi",
                "num_candidates",
                "skipped_rounds",
                "coverage_pct",
                "entropy_proxy",
                "outcome",
            ],
        )
        self.w.writeheader()

    def log(self, **kwargs):
        row = {"t": time.time(), **kwargs}
        self.w.writerow(row)
        self.f.flush()

    def close(self):
        self.f.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
