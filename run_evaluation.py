#!/usr/bin/env python
"""
Evaluate the pre-trained DPT random forest on the held-out test matrix.

Reads settings from dptclf.yaml in the working directory (or from the YAML
file given as the only argument), then:
1. Loads the model artifact and test matrix
2. Predicts CD4 / CD8 / DP probabilities for every cell
3. Prints one-vs-rest AUCs and confusion-matrix statistics
4. Writes 01.DP_RF_prob.png and 02.DPT_features.png

Usage:
    python run_evaluation.py
    python run_evaluation.py path/to/config.yaml
"""

import logging
import sys

from dptclf import DptError, EvaluationPipeline, format_report, load_config

logger = logging.getLogger("run_evaluation")


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) > 1:
        print("Usage: run_evaluation.py [config.yaml]", file=sys.stderr)
        return 2

    _configure_logging()

    try:
        config = load_config(argv[0] if argv else None)
        report = EvaluationPipeline(config).run()
    except DptError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    print(format_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
