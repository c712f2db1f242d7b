"""CI validation: verify an experiment catalog is well formed.

This script gates catalog changes in CI. It reads the catalog JSON and
asserts the structural invariants the assignment engine relies on. If
anything is wrong, it exits non-zero and fails the build.

Usage:
    python ci/validate_catalog.py
    python ci/validate_catalog.py --catalog experiments.json
"""

import argparse
import json
import math
import sys
from pathlib import Path

REQUIRED_EXPERIMENT_KEYS = {"experimentID", "name", "variants"}


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate(data) -> list[str]:
    """Return a list of validation errors (empty = pass)."""
    errors = []

    # --- Top-level structure ---
    if not isinstance(data, list):
        return [f"Catalog must be a JSON array, got {type(data).__name__}"]

    if not data:
        errors.append("Catalog is empty: no experiments defined")

    seen_ids = set()
    for position, exp in enumerate(data):
        if not isinstance(exp, dict):
            errors.append(f"Record #{position} is not an object")
            continue

        missing = REQUIRED_EXPERIMENT_KEYS - set(exp.keys())
        if missing:
            errors.append(f"Record #{position} missing keys: {sorted(missing)}")
            continue

        exp_id = exp["experimentID"]
        if not isinstance(exp_id, str) or not exp_id:
            errors.append(f"Record #{position} has an invalid experimentID: {exp_id!r}")
            continue
        if exp_id in seen_ids:
            errors.append(f"Duplicate experimentID: {exp_id}")
        seen_ids.add(exp_id)

        # --- Experiment weight ---
        weight = exp.get("weight", 1)
        if not _is_number(weight) or weight < 0:
            errors.append(f"Experiment {exp_id} has invalid weight: {weight}")

        max_age = exp.get("maxAge")
        if max_age is not None and (not isinstance(max_age, int) or max_age < 0):
            errors.append(f"Experiment {exp_id} has invalid maxAge: {max_age}")

        # --- Variants ---
        variants = exp["variants"]
        if not isinstance(variants, list) or not variants:
            errors.append(f"Experiment {exp_id} has no variants")
            continue

        drawable = 0
        for i, v in enumerate(variants):
            v_weight = v.get("weight", 1) if isinstance(v, dict) else None
            if not _is_number(v_weight) or v_weight < 0:
                errors.append(f"Experiment {exp_id} variant {i} has invalid weight: {v_weight}")
            elif v_weight > 0:
                drawable += 1

        # --- Sections ---
        sections = exp.get("sections", 1)
        if not isinstance(sections, int) or isinstance(sections, bool) or sections < 1:
            errors.append(f"Experiment {exp_id} has invalid sections: {sections}")
        elif sections > drawable:
            errors.append(
                f"Experiment {exp_id} needs {sections} sections but only "
                f"{drawable} variants have positive weight"
            )

    return errors


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate an experiment catalog")
    parser.add_argument(
        "--catalog",
        default="experiments.json",
        help="Path to the experiment catalog JSON",
    )
    opts = parser.parse_args()

    path = Path(opts.catalog)
    if not path.exists():
        print(f"FAIL: {opts.catalog} not found.")
        sys.exit(1)

    data = json.loads(path.read_text())
    errors = validate(data)

    if errors:
        print(f"FAIL: {len(errors)} validation error(s):")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)

    # Print summary on success
    print("PASS: Experiment catalog validated")
    print(f"  Experiments: {len(data)}")
    for exp in data:
        print(
            f"  {exp['experimentID']}: weight={exp.get('weight', 1)}, "
            f"{len(exp['variants'])} variants, sections={exp.get('sections', 1)}"
        )


if __name__ == "__main__":
    main()
