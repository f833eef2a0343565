"""
Run the Enrollment A/B Testing Pipeline

Usage:
    # Run on ./data/raw/udacity_ab/{control,experiment}.csv
    uv run python run_pipelines.py

    # Explicit files
    uv run python run_pipelines.py --control Control.csv --experiment Experiment.csv

    # Synthetic demo data (no files needed)
    uv run python run_pipelines.py --synthetic

    # Run quietly
    uv run python run_pipelines.py --quiet
"""

import argparse
import sys

from ab_enrollment.data import loaders, preparation
from ab_enrollment.models import estimators
from ab_enrollment.pipelines import run_enrollment_analysis


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Run A/B sanity checks, conversion tests and enrollment models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default data directory
  python run_pipelines.py

  # Custom seed and split
  python run_pipelines.py --seed 7 --train-prop 0.75

  # Only the tree-based models
  python run_pipelines.py --models tree gbm

  # Synthetic data
  python run_pipelines.py --synthetic
        """
    )

    parser.add_argument(
        '--control',
        default=None,
        help='Control group CSV (default: <data-dir>/control.csv)'
    )

    parser.add_argument(
        '--experiment',
        default=None,
        help='Experiment group CSV (default: <data-dir>/experiment.csv)'
    )

    parser.add_argument(
        '--data-dir',
        default=loaders.DEFAULT_DATA_DIR,
        help=f'Directory holding the CSV files (default: {loaders.DEFAULT_DATA_DIR})'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=preparation.DEFAULT_RANDOM_STATE,
        help=f'Random seed for shuffle, split and models (default: {preparation.DEFAULT_RANDOM_STATE})'
    )

    parser.add_argument(
        '--train-prop',
        type=float,
        default=preparation.DEFAULT_TRAIN_PROP,
        help=f'Training fraction (default: {preparation.DEFAULT_TRAIN_PROP})'
    )

    parser.add_argument(
        '--models',
        nargs='+',
        choices=estimators.MODEL_TYPES,
        default=estimators.MODEL_TYPES,
        help='Models to fit (default: all)'
    )

    parser.add_argument(
        '--synthetic',
        action='store_true',
        help='Use generated data instead of reading files'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress verbose output'
    )

    return parser


def main(argv=None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    verbose = not args.quiet

    try:
        control = experiment = None
        if args.synthetic:
            control, experiment = loaders.generate_synthetic_ab_data(random_state=args.seed)

        result = run_enrollment_analysis(
            control_path=args.control,
            experiment_path=args.experiment,
            data_dir=args.data_dir,
            control=control,
            experiment=experiment,
            random_state=args.seed,
            train_prop=args.train_prop,
            model_types=args.models,
            verbose=verbose
        )

        if not verbose:
            print(result['metrics_table'].to_string(float_format=lambda v: f"{v:.3f}"))

        return 0

    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
