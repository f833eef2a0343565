"""
Frequentist Tests for Conversion Metrics
========================================

Tests used to compare the experiment group's funnel conversion against
control:

- z_test_proportions: pooled two-proportion z-test on aggregate counts
  (gross conversion = enrollments / clicks, net conversion = payments / clicks)
- sign_test: exact binomial test on the direction of daily differences

Example Usage:
--------------
>>> from ab_enrollment.core import frequentist
>>>
>>> # Gross conversion: enrollments / clicks
>>> result = frequentist.z_test_proportions(
...     x_control=3785, n_control=17293,
...     x_treatment=3423, n_treatment=17260
... )
>>> print(f"Lift: {result['absolute_lift']:.4f}, p={result['p_value']:.4f}")
"""

import numpy as np
from typing import Dict
from scipy import stats


def z_test_proportions(
    x_control: int,
    n_control: int,
    x_treatment: int,
    n_treatment: int,
    alpha: float = 0.05,
    practical_threshold: float = 0.0,
) -> Dict[str, float]:
    """
    Compare a funnel conversion rate between groups on aggregate counts.

    ``x`` is the converted count (enrollments for gross conversion, payments
    for net conversion) and ``n`` the clicks it is measured against. The
    difference is tested two-sided with the pooled standard error, and the
    same pooled error sets the margin of the confidence interval.

    Parameters
    ----------
    x_control, x_treatment : int
        Converted counts per group
    n_control, n_treatment : int
        Clicks per group
    alpha : float, default=0.05
        Significance level
    practical_threshold : float, default=0.0
        Smallest absolute difference worth acting on (d_min). The result is
        practically significant when the whole interval lies beyond it.

    Returns
    -------
    dict
        Dictionary with keys:
        - p_control, p_treatment: Conversion rate per group
        - absolute_lift: Treatment - Control
        - relative_lift: Lift relative to control (NaN if control rate is 0)
        - se_pooled: Pooled standard error of the difference
        - margin: Half-width of the (1 - alpha) interval
        - ci_lower, ci_upper: Interval around absolute_lift
        - z_statistic, p_value: Two-sided test of no difference
        - significant: p_value < alpha
        - practically_significant: Interval clears practical_threshold

    Example
    -------
    >>> result = z_test_proportions(3785, 17293, 3423, 17260, practical_threshold=0.01)
    >>> print(result['significant'], result['practically_significant'])
    """
    if x_control < 0 or x_treatment < 0:
        raise ValueError("x_control and x_treatment must be non-negative")
    if n_control <= 0 or n_treatment <= 0:
        raise ValueError("n_control and n_treatment must be positive")
    if x_control > n_control or x_treatment > n_treatment:
        raise ValueError("Number of successes cannot exceed sample size")
    if practical_threshold < 0:
        raise ValueError("practical_threshold must be non-negative")

    rates = np.array([x_control / n_control, x_treatment / n_treatment])
    diff = rates[1] - rates[0]

    pooled = (x_control + x_treatment) / (n_control + n_treatment)
    se_pooled = float(np.sqrt(pooled * (1 - pooled) * (1 / n_control + 1 / n_treatment)))

    if se_pooled > 0:
        z_stat = diff / se_pooled
        p_value = 2 * stats.norm.sf(abs(z_stat))
    else:
        # Both groups all-or-nothing at the same rate
        z_stat, p_value = 0.0, 1.0

    margin = stats.norm.ppf(1 - alpha / 2) * se_pooled
    ci_lower, ci_upper = diff - margin, diff + margin

    return {
        'p_control': rates[0],
        'p_treatment': rates[1],
        'absolute_lift': diff,
        'relative_lift': diff / rates[0] if rates[0] > 0 else np.nan,
        'se_pooled': se_pooled,
        'margin': margin,
        'ci_lower': ci_lower,
        'ci_upper': ci_upper,
        'z_statistic': z_stat,
        'p_value': p_value,
        'significant': p_value < alpha,
        'practically_significant': bool(
            ci_lower > practical_threshold or ci_upper < -practical_threshold
        ),
    }


def sign_test(
    control_rates: np.ndarray,
    treatment_rates: np.ndarray,
    alpha: float = 0.05,
) -> Dict[str, float]:
    """
    Exact sign test on paired daily rates.

    Counts the days on which treatment beat control and tests that count
    against Binomial(n_days, 0.5). Days with equal rates are discarded, and so
    are days whose rate is undefined (NaN or infinite, e.g. zero clicks). When
    no day is left the result is n_days=0 with p_value=1.0.

    Parameters
    ----------
    control_rates : np.ndarray
        Daily metric for control (one value per day)
    treatment_rates : np.ndarray
        Daily metric for treatment, aligned with control_rates
    alpha : float, default=0.05
        Significance level

    Returns
    -------
    dict
        Dictionary with keys:
        - n_days: Number of informative (non-tied, finite) days
        - n_positive: Days where treatment > control
        - p_value: Two-sided exact binomial p-value
        - significant: Whether p_value < alpha

    Example
    -------
    >>> c = np.array([0.20, 0.21, 0.19, 0.22])
    >>> t = np.array([0.18, 0.19, 0.20, 0.17])
    >>> print(sign_test(c, t)['n_positive'])
    1
    """
    control_rates = np.asarray(control_rates, dtype=float)
    treatment_rates = np.asarray(treatment_rates, dtype=float)

    if control_rates.shape != treatment_rates.shape:
        raise ValueError("control_rates and treatment_rates must have same length")

    diff = treatment_rates - control_rates
    diff = diff[np.isfinite(diff) & (diff != 0)]
    n_days = len(diff)
    n_positive = int((diff > 0).sum())

    if n_days == 0:
        p_value = 1.0
    else:
        p_value = stats.binomtest(n_positive, n_days, p=0.5, alternative='two-sided').pvalue

    return {
        'n_days': n_days,
        'n_positive': n_positive,
        'p_value': p_value,
        'significant': p_value < alpha,
    }
