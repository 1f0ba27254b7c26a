# controllers/mi_explorer/scripts/plot_eval_curves.py

import csv
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt


def load_log(path):
    steps = []
    cov = []
    ent = []
    with Path(path).open("r", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            steps.append(int(row["step"]))
            cov.append(float(row["coverage_pct"]))
            ent.append(float(row["entropy_proxy"]))
    return steps, cov, ent


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("usage: plot_eval_curves.py RUN.csv [RUN.csv ...]")
        return 1

    out_dir = Path("eval_logs")
    out_dir.mkdir(parents=True, exist_ok=True)
    runs = [(Path(p).stem, load_log(p)) for p in argv]

    # --- Coverage plot ---
    plt.figure()
    for name, (steps, cov, _) in runs:
        plt.plot(steps, cov, label=name)
    plt.xlabel("planning step")
    plt.ylabel("coverage (%)")
    plt.title("Coverage vs planning step")
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_dir / "mi_coverage.png")
    print(f"Saved {out_dir / 'mi_coverage.png'}")

    # --- Entropy plot ---
    plt.figure()
    for name, (steps, _, ent) in runs:
        plt.plot(steps, ent, label=name)
    plt.xlabel("planning step")
    plt.ylabel("unobserved fraction")
    plt.title("Entropy proxy vs planning step")
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_dir / "mi_entropy.png")
    print(f"Saved {out_dir / 'mi_entropy.png'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
