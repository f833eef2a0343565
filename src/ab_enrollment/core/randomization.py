"""
Invariant Metric Sanity Checks
==============================

Counts collected before users see the change (course page views, clicks on
"start free trial") should split between groups exactly as assigned. A
significant imbalance points to a diversion or logging problem and
invalidates downstream comparisons.

Example Usage:
--------------
>>> from ab_enrollment.core import randomization
>>>
>>> result = randomization.invariant_check(
...     n_control=345543, n_treatment=344660, metric='pageviews'
... )
>>> print(f"Passed: {result['passed']}, p={result['p_value']:.4f}")
"""

import numpy as np
from typing import Dict, List, Optional
from scipy import stats


def invariant_check(
    n_control: int,
    n_treatment: int,
    metric: str = 'count',
    expected_ratio: Optional[List[float]] = None,
    alpha: float = 0.05,
    pp_threshold: float = 0.01,
) -> Dict[str, float]:
    """
    Check that an invariant count is split according to the allocation.

    Two-stage gating, as for a sample ratio mismatch check:
    - Stage A (Statistical): chi-square goodness-of-fit p-value < alpha
    - Stage B (Practical): control share deviates by more than pp_threshold
    The check fails only when both stages flag the imbalance.

    Parameters
    ----------
    n_control : int
        Total of the invariant metric in control
    n_treatment : int
        Total of the invariant metric in treatment
    metric : str, default='count'
        Name used in the result (e.g. 'pageviews', 'clicks')
    expected_ratio : list of float, optional
        Expected allocation [control, treatment]. Default: [0.5, 0.5]
    alpha : float, default=0.05
        Significance level
    pp_threshold : float, default=0.01
        Practical threshold on the control share, in proportion units

    Returns
    -------
    dict
        Dictionary with keys:
        - metric: Metric name
        - n_control, n_treatment: Observed totals
        - ratio_control: Observed control share
        - expected_control_ratio: Expected control share
        - ci_lower, ci_upper: Acceptance interval for the control share
        - chi2_statistic: Chi-square statistic
        - p_value: P-value
        - statistically_significant: p_value < alpha
        - pp_deviation: |observed share - expected share|
        - passed: False only when both stages flag the imbalance

    Example
    -------
    >>> result = invariant_check(31488, 31209, metric='clicks')
    >>> print(result['passed'])
    True
    """
    if n_control <= 0 or n_treatment <= 0:
        raise ValueError("Counts must be positive")

    if expected_ratio is None:
        expected_ratio = [0.5, 0.5]

    if len(expected_ratio) != 2:
        raise ValueError("expected_ratio must have exactly 2 elements")
    if not np.isclose(sum(expected_ratio), 1.0):
        raise ValueError("expected_ratio must sum to 1.0")
    if any(r <= 0 for r in expected_ratio):
        raise ValueError("expected_ratio elements must be positive")

    n_total = n_control + n_treatment
    expected = np.array(expected_ratio) * n_total
    observed = np.array([n_control, n_treatment])

    chi2_statistic = float(np.sum((observed - expected)**2 / expected))
    p_value = 1 - stats.chi2.cdf(chi2_statistic, df=1)

    ratio_control = n_control / n_total
    p0 = expected_ratio[0]

    # Acceptance interval for the control share under the null
    margin = stats.norm.ppf(1 - alpha/2) * np.sqrt(p0 * (1 - p0) / n_total)

    statistically_significant = p_value < alpha
    pp_deviation = abs(ratio_control - p0)
    practical_significant = pp_deviation > pp_threshold

    return {
        'metric': metric,
        'n_control': n_control,
        'n_treatment': n_treatment,
        'ratio_control': ratio_control,
        'expected_control_ratio': p0,
        'ci_lower': p0 - margin,
        'ci_upper': p0 + margin,
        'chi2_statistic': chi2_statistic,
        'p_value': p_value,
        'statistically_significant': statistically_significant,
        'pp_deviation': pp_deviation,
        'passed': not (statistically_significant and practical_significant),
    }
