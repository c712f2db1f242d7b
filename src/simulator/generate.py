"""CLI entrypoint: simulate visitor traffic and summarize the assignment split.

Usage:
    python -m src.simulator.generate
    python -m src.simulator.generate --visitors 5000 --seed 7
    python -m src.simulator.generate --catalog experiments.json
"""

import argparse
from collections import Counter

from src.ab.catalog import load_catalog_file
from src.ab.experiment import HERO_COPY_EXPERIMENT
from src.simulator.config import SimulationConfig
from src.simulator.engine import VisitRecord, simulate_visits


def summarize(records: list[VisitRecord]) -> dict:
    """Count first-visit assignments and how many return visits stayed sticky."""
    experiments: Counter = Counter()
    variants: Counter = Counter()
    returning = sticky = 0

    for r in records:
        if r.cookie_sent is None:
            experiments[r.experiment_id or "(none)"] += 1
            for cls in r.classes:
                variants[cls] += 1
        else:
            returning += 1
            if r.cookie_written is None:
                sticky += 1

    return {
        "visits": len(records),
        "experiments": dict(experiments),
        "variants": dict(variants),
        "returning_visits": returning,
        "sticky_rate": sticky / returning if returning else 1.0,
    }


def main(args: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Simulate experiment assignment traffic")
    parser.add_argument("--visitors", type=int, default=2000, help="Number of visitors")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--catalog", type=str, default=None, help="Experiment catalog JSON")
    opts = parser.parse_args(args)

    config = SimulationConfig(num_visitors=opts.visitors, seed=opts.seed)
    experiments = load_catalog_file(opts.catalog) if opts.catalog else [HERO_COPY_EXPERIMENT]

    print(f"Catalog: {len(experiments)} experiment(s)")
    for exp in experiments:
        print(f"  {exp.experiment_id} ({exp.name}): weight={exp.weight}, "
              f"{len(exp.variants)} variants, {exp.sections} section(s)")

    print(f"Simulating {config.num_visitors} visitors (seed={config.seed})...")
    summary = summarize(simulate_visits(experiments, config))
    print(f"Simulated {summary['visits']} visits")

    print("First-visit experiment split:")
    for exp_id, count in sorted(summary["experiments"].items()):
        print(f"  {exp_id}: {count}")
    print("First-visit variant split:")
    for cls, count in sorted(summary["variants"].items()):
        print(f"  {cls}: {count}")

    print(f"\nReturning visits: {summary['returning_visits']}, "
          f"sticky: {summary['sticky_rate']:.1%}")
    print("Done.")


if __name__ == "__main__":
    main()
