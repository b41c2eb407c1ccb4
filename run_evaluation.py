#!/usr/bin/env python
"""Evaluate a trained detector on every group listed in groups.yaml."""

import sys

from countEval.pipeline import load_group_files, run_batch


def main():
    if len(sys.argv) < 3:
        print("Usage: python run_evaluation.py <model.pt> <output_base> [groups.yaml]")
        print("Example: python run_evaluation.py models/best.pt results/yolo.dat")
        return 1

    model_path, output_base = sys.argv[1], sys.argv[2]
    groups_file = sys.argv[3] if len(sys.argv) > 3 else "data/groups.yaml"

    run = run_batch(model_path, load_group_files(groups_file), output_base)

    if run.already_evaluated:
        print("Nothing to do, delete the .eval files to re-run.")
    elif run.aborted:
        print("Evaluation stopped before all groups were processed.")
    else:
        print(f"\n✅ Evaluated {len(run.groups)} groups")
    return 0


if __name__ == "__main__":
    sys.exit(main())
