"""
Enrollment A/B Test Pipeline

This module runs the end-to-end analysis of a daily-aggregate A/B test:
sanity checks, conversion significance, and enrollment driver models.

Dataset: Udacity Free Trial Screener (control.csv / experiment.csv)
Use Case: Did the screener change enrollment behaviour, and which measured
factors drive daily enrollments?

Pipeline Steps:
1. Load control and experiment data
2. Sanity-check invariant metrics (pageviews, clicks)
3. Test gross and net conversion (z-test + sign test)
4. Prepare modeling data (merge, day of week, drop missing outcomes, split)
5. Fit linear, decision tree and gradient boosting models
6. Compare models and rank feature importance
"""

import pandas as pd
from typing import Dict, Any, List, Optional

from ab_enrollment.data import loaders, preparation
from ab_enrollment.core import randomization, frequentist
from ab_enrollment.models import estimators


INVARIANT_METRICS = ['pageviews', 'clicks']

# name -> (numerator, denominator, practical significance boundary d_min)
CONVERSION_METRICS = {
    'gross_conversion': ('enrollments', 'clicks', 0.01),
    'net_conversion': ('payments', 'clicks', 0.0075),
}


def _day_key(dates: pd.Series) -> pd.Series:
    """'Sat, Oct 11' and 'Sat Oct 11' both become 'Sat Oct 11'."""
    return dates.astype(str).str.replace(",", " ", regex=False).str.split().str.join(" ")


def conversion_summary(
    control: pd.DataFrame,
    experiment: pd.DataFrame,
    alpha: float = 0.05,
) -> Dict[str, Dict[str, Any]]:
    """
    Compare gross and net conversion between groups.

    Days are paired on their date with commas and extra spaces ignored, and
    only days where both groups report enrollments and payments are used.
    Each metric gets an aggregate z-test and a daily sign test; days with zero
    clicks have no daily rate and are left out of the sign test.

    Parameters
    ----------
    control : pd.DataFrame
        Control observations (loader schema)
    experiment : pd.DataFrame
        Experiment observations (loader schema)
    alpha : float, default=0.05
        Significance level

    Returns
    -------
    dict
        Keyed by metric name; each value holds ``n_days``, ``z_test`` and
        ``sign_test`` result dicts
    """
    paired = control.assign(day=_day_key(control['date'])).merge(
        experiment.assign(day=_day_key(experiment['date'])),
        on='day',
        suffixes=('_control', '_experiment')
    )
    outcome_cols = [
        f'{col}_{group}'
        for col in ('enrollments', 'payments')
        for group in ('control', 'experiment')
    ]
    paired = paired.dropna(subset=outcome_cols)

    if len(paired) == 0:
        raise ValueError("No days with observed outcomes in both groups")

    summary = {}
    for name, (num, den, d_min) in CONVERSION_METRICS.items():
        z_result = frequentist.z_test_proportions(
            x_control=int(paired[f'{num}_control'].sum()),
            n_control=int(paired[f'{den}_control'].sum()),
            x_treatment=int(paired[f'{num}_experiment'].sum()),
            n_treatment=int(paired[f'{den}_experiment'].sum()),
            alpha=alpha,
            practical_threshold=d_min
        )
        sign_result = frequentist.sign_test(
            (paired[f'{num}_control'] / paired[f'{den}_control']).to_numpy(),
            (paired[f'{num}_experiment'] / paired[f'{den}_experiment']).to_numpy(),
            alpha=alpha
        )
        summary[name] = {
            'n_days': len(paired),
            'z_test': z_result,
            'sign_test': sign_result,
        }

    return summary


def run_enrollment_analysis(
    control_path: Optional[str] = None,
    experiment_path: Optional[str] = None,
    data_dir: Optional[str] = None,
    control: Optional[pd.DataFrame] = None,
    experiment: Optional[pd.DataFrame] = None,
    random_state: int = preparation.DEFAULT_RANDOM_STATE,
    train_prop: float = preparation.DEFAULT_TRAIN_PROP,
    model_types: Optional[List[str]] = None,
    alpha: float = 0.05,
    verbose: bool = True
) -> Dict[str, Any]:
    """
    Run complete A/B analysis and enrollment modeling.

    Parameters
    ----------
    control_path, experiment_path, data_dir : str, optional
        File locations passed to ``loaders.load_ab_data``. Ignored when
        both ``control`` and ``experiment`` frames are given.
    control, experiment : pd.DataFrame, optional
        Already-loaded observations (loader schema)
    random_state : int, default=42
        Seed for the shuffle, the split and the tree-based models
    train_prop : float, default=0.8
        Training fraction
    model_types : list of str, optional
        Subset of ['linear', 'tree', 'gbm']. Default: all three
    alpha : float, default=0.05
        Significance level for invariant and conversion tests
    verbose : bool, default=True
        Print detailed progress and results.

    Returns
    -------
    Dict[str, Any]
        Analysis results including:
        - data_summary: Row counts and totals per group
        - invariant_checks: Per-metric sanity check results
        - conversion: Gross/net conversion test results (empty if skipped)
        - conversion_error: Why the conversion tests were skipped, else None
        - preparation: Row counts through merge, clean and split
        - models: run_model results keyed by model type
        - metrics_table: Model comparison sorted by MAE
        - best_model: Model type with lowest test MAE

    Examples
    --------
    >>> results = run_enrollment_analysis(data_dir='./data/raw/udacity_ab')
    >>> print(results['metrics_table'])
    """
    results = {}

    # ========================================================================
    # STEP 1: Load Data
    # ========================================================================
    if verbose:
        print("="*70)
        print("ENROLLMENT A/B TEST PIPELINE")
        print("="*70)
        print(f"\n[1/6] Loading control and experiment data...")

    if control is None or experiment is None:
        control, experiment = loaders.load_ab_data(
            control_path=control_path,
            experiment_path=experiment_path,
            data_dir=data_dir
        )

    results['data_summary'] = {
        'control_days': len(control),
        'experiment_days': len(experiment),
        'control_pageviews': int(control['pageviews'].sum()),
        'experiment_pageviews': int(experiment['pageviews'].sum()),
        'control_missing_outcomes': int(control['enrollments'].isna().sum()),
        'experiment_missing_outcomes': int(experiment['enrollments'].isna().sum()),
    }

    if verbose:
        summary = results['data_summary']
        print(f"   ✓ Control: {summary['control_days']} days, {summary['control_pageviews']:,} pageviews")
        print(f"   ✓ Experiment: {summary['experiment_days']} days, {summary['experiment_pageviews']:,} pageviews")
        print(f"   ✓ Days without enrollments: "
              f"{summary['control_missing_outcomes']} control / {summary['experiment_missing_outcomes']} experiment")

    # ========================================================================
    # STEP 2: Invariant Metric Sanity Checks
    # ========================================================================
    if verbose:
        print(f"\n[2/6] Checking invariant metrics...")

    results['invariant_checks'] = {}
    for metric in INVARIANT_METRICS:
        check = randomization.invariant_check(
            n_control=int(control[metric].sum()),
            n_treatment=int(experiment[metric].sum()),
            metric=metric,
            alpha=alpha
        )
        results['invariant_checks'][metric] = check

        if verbose:
            status = "✓" if check['passed'] else "✗"
            print(f"   {status} {metric}: control share {check['ratio_control']:.4f} "
                  f"(accept {check['ci_lower']:.4f}-{check['ci_upper']:.4f}, p={check['p_value']:.4f})")

    results['sanity_passed'] = all(c['passed'] for c in results['invariant_checks'].values())

    if verbose and not results['sanity_passed']:
        print(f"   ⚠️  Invariant check failed - treat conversion results with caution")

    # ========================================================================
    # STEP 3: Conversion Tests
    # ========================================================================
    if verbose:
        print(f"\n[3/6] Testing gross and net conversion...")

    try:
        results['conversion'] = conversion_summary(control, experiment, alpha=alpha)
        results['conversion_error'] = None
    except ValueError as e:
        # Modeling does not depend on the conversion tests
        results['conversion'] = {}
        results['conversion_error'] = str(e)
        if verbose:
            print(f"   ⚠️  Conversion tests skipped: {e}")

    if verbose:
        for name, res in results['conversion'].items():
            z = res['z_test']
            s = res['sign_test']
            print(f"   ✓ {name} ({res['n_days']} days):")
            print(f"     - Control: {z['p_control']:.4f} | Experiment: {z['p_treatment']:.4f}")
            print(f"     - Difference: {z['absolute_lift']:+.4f} "
                  f"(CI {z['ci_lower']:+.4f} to {z['ci_upper']:+.4f}), p={z['p_value']:.4f}, "
                  f"practically significant: {z['practically_significant']}")
            print(f"     - Sign test: {s['n_positive']}/{s['n_days']} days higher, p={s['p_value']:.4f}")

    # ========================================================================
    # STEP 4: Prepare Modeling Data
    # ========================================================================
    if verbose:
        print(f"\n[4/6] Preparing modeling data (seed={random_state}, train_prop={train_prop})...")

    merged = preparation.merge_groups(control, experiment)
    featured = preparation.derive_features(merged)
    cleaned = preparation.drop_missing_outcomes(featured)
    train, test = preparation.split_train_test(
        cleaned, random_state=random_state, train_prop=train_prop
    )

    results['preparation'] = {
        'merged_rows': len(merged),
        'cleaned_rows': len(cleaned),
        'dropped_rows': len(merged) - len(cleaned),
        'train_rows': len(train),
        'test_rows': len(test),
        'train_experiment_share': float(train[preparation.GROUP_COL].mean()),
        'test_experiment_share': float(test[preparation.GROUP_COL].mean()),
    }
    results['train'] = train
    results['test'] = test

    if verbose:
        prep = results['preparation']
        print(f"   ✓ Merged {prep['merged_rows']} rows, dropped {prep['dropped_rows']} without outcome")
        print(f"   ✓ Train: {prep['train_rows']} rows ({prep['train_experiment_share']:.0%} experiment)")
        print(f"   ✓ Test: {prep['test_rows']} rows ({prep['test_experiment_share']:.0%} experiment)")

    # ========================================================================
    # STEP 5: Fit Models
    # ========================================================================
    if verbose:
        print(f"\n[5/6] Fitting enrollment models...")

    results['models'], results['metrics_table'] = estimators.compare_models(
        train, test,
        model_types=model_types,
        random_state=random_state
    )
    results['best_model'] = results['metrics_table'].index[0]

    if verbose:
        for name, res in results['models'].items():
            print(f"   ✓ {estimators.MODEL_LABELS.get(name, name)}: "
                  f"MAE={res['mae']:.2f}, RMSE={res['rmse']:.2f}, R²={res['r2']:.3f}")

    # ========================================================================
    # STEP 6: Summary
    # ========================================================================
    if verbose:
        print(f"\n[6/6] Model comparison and feature importance")
        print(results['metrics_table'].to_string(float_format=lambda v: f"{v:.3f}"))

        best = results['models'][results['best_model']]
        print(f"\n   Best model: {estimators.MODEL_LABELS.get(results['best_model'], results['best_model'])}")
        print(f"   Top drivers of enrollments:")
        for _, row in best['feature_importance'].head(5).iterrows():
            print(f"     - {row['feature']}: {row['importance']:.4f}")

        print(f"\n" + "="*70)
        print(f"✅ Pipeline complete!")
        print(f"="*70 + "\n")

    return results
