"""
Data Preparation for Enrollment Modeling
========================================

Turns the raw control/experiment frames into train/test sets:

1. merge_groups: concatenate, tag the experiment group, assign row_id
2. derive_features: date -> day_of_week category, drop payments
3. drop_missing_outcomes: remove days without an observed outcome
4. split_train_test: seeded shuffle + stratified train/test partition

Every step returns a new DataFrame; inputs are never modified in place.
The random seed is always passed explicitly.

Example Usage:
--------------
>>> from ab_enrollment.data import loaders, preparation
>>>
>>> control, experiment = loaders.generate_synthetic_ab_data(random_state=42)
>>> train, test = preparation.prepare_modeling_data(
...     control, experiment, random_state=42, train_prop=0.8
... )
>>> print(len(train), len(test))
"""

import warnings
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from ab_enrollment.exceptions import MissingOutcomeDataError, UnknownDayAbbreviationError


DAY_ABBREVIATIONS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
DAY_OF_WEEK_DTYPE = pd.CategoricalDtype(categories=DAY_ABBREVIATIONS, ordered=True)

GROUP_COL = "experiment"
ROW_ID_COL = "row_id"
OUTCOME_COL = "enrollments"

DEFAULT_RANDOM_STATE = 42
DEFAULT_TRAIN_PROP = 0.8


def merge_groups(control: pd.DataFrame, experiment: pd.DataFrame) -> pd.DataFrame:
    """
    Stack control and experiment rows and label each with its group.

    Parameters
    ----------
    control : pd.DataFrame
        Control group observations (labelled 0)
    experiment : pd.DataFrame
        Experiment group observations (labelled 1)

    Returns
    -------
    pd.DataFrame
        Control rows first, then experiment rows, each in original order, with
        an integer ``experiment`` column and a unique ``row_id`` (0..n-1).
    """
    if not control.columns.equals(experiment.columns):
        raise ValueError(
            "control and experiment must have the same columns: "
            f"{control.columns.tolist()} vs {experiment.columns.tolist()}"
        )

    merged = pd.concat(
        [control.assign(**{GROUP_COL: 0}), experiment.assign(**{GROUP_COL: 1})],
        ignore_index=True,
    )
    merged[ROW_ID_COL] = range(len(merged))

    return merged


def day_of_week_from_date(date: str) -> str:
    """
    Map a date string such as 'Sat, Oct 11' to its day abbreviation.

    Only the first three characters are used.

    Raises
    ------
    UnknownDayAbbreviationError
        If the prefix is not one of Sun, Mon, Tue, Wed, Thu, Fri, Sat
    """
    prefix = str(date)[:3]
    if prefix not in DAY_ABBREVIATIONS:
        raise UnknownDayAbbreviationError(
            f"Unrecognised day abbreviation '{prefix}' in date '{date}'. "
            f"Expected one of {DAY_ABBREVIATIONS}"
        )
    return prefix


def derive_features(df: pd.DataFrame) -> pd.DataFrame:
    """
    Replace ``date`` with a categorical ``day_of_week`` and drop ``payments``.

    Payments occur downstream of enrollment and never enter the features.

    Parameters
    ----------
    df : pd.DataFrame
        Output of ``merge_groups``

    Returns
    -------
    pd.DataFrame
        Same rows; ``day_of_week`` is an ordered Categorical over Sun..Sat
        and sits where ``date`` was.

    Raises
    ------
    UnknownDayAbbreviationError
        If any date has an unrecognised prefix
    """
    if "date" not in df.columns:
        raise ValueError("DataFrame must have a 'date' column")

    days = df["date"].map(day_of_week_from_date).astype(DAY_OF_WEEK_DTYPE)

    out = df.copy()
    out.insert(out.columns.get_loc("date"), "day_of_week", days)
    out = out.drop(columns=["date", "payments"], errors="ignore")

    return out


def drop_missing_outcomes(df: pd.DataFrame, outcome: str = OUTCOME_COL) -> pd.DataFrame:
    """
    Keep only rows whose outcome was observed.

    Emits a ``MissingOutcomeDataError`` warning when rows are dropped.

    Parameters
    ----------
    df : pd.DataFrame
        Dataset that may contain missing outcomes
    outcome : str, default='enrollments'
        Outcome column

    Returns
    -------
    pd.DataFrame
        Rows with a present outcome, original order kept, outcome cast to int
    """
    if outcome not in df.columns:
        raise ValueError(f"DataFrame must have an '{outcome}' column")

    present = df[outcome].notna()
    n_dropped = int((~present).sum())

    if n_dropped:
        warnings.warn(
            f"Dropped {n_dropped} of {len(df)} rows with missing '{outcome}'",
            MissingOutcomeDataError,
            stacklevel=2,
        )

    cleaned = df.loc[present].copy()
    cleaned[outcome] = cleaned[outcome].astype(int)

    return cleaned


def _needs_manual_split(strata: pd.Series, train_prop: float) -> bool:
    """True when scikit-learn cannot stratify this many rows and groups."""
    counts = strata.value_counts()
    n_train = int(np.floor(train_prop * len(strata)))
    n_test = len(strata) - n_train
    return counts.min() < 2 or min(n_train, n_test) < len(counts)


def _split_by_stratum(
    shuffled: pd.DataFrame,
    train_prop: float,
    stratify_col: str,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Take ``round(train_prop * k)`` leading rows of each stratum for training.

    A stratum with at least 2 rows keeps one row on each side. A single-row
    stratum goes wherever rounding sends it.
    """
    train_labels = []
    for _, rows in shuffled.groupby(stratify_col, sort=True):
        k = len(rows)
        n_train = int(round(train_prop * k))
        if k > 1:
            n_train = min(max(n_train, 1), k - 1)
        train_labels.extend(rows.index[:n_train])

    in_train = shuffled.index.isin(train_labels)
    return shuffled[in_train], shuffled[~in_train]


def split_train_test(
    df: pd.DataFrame,
    random_state: int = DEFAULT_RANDOM_STATE,
    train_prop: float = DEFAULT_TRAIN_PROP,
    stratify_col: str = GROUP_COL,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Shuffle rows and split them into stratified train and test sets.

    Parameters
    ----------
    df : pd.DataFrame
        Cleaned dataset
    random_state : int, default=42
        Seed for both the shuffle and the split
    train_prop : float, default=0.8
        Fraction of rows assigned to training (0 < train_prop < 1)
    stratify_col : str, default='experiment'
        Column whose proportions are preserved in both subsets

    Returns
    -------
    tuple of pd.DataFrame
        (train, test). Disjoint, their union is ``df``. The training set
        normally holds ``floor(train_prop * n)`` rows.

    Notes
    -----
    - Identical inputs and seed give an identical partition
    - When a stratum has a single row, or the smaller side cannot hold one
      row per stratum, rows are allocated per stratum instead: the first
      ``round(train_prop * k)`` shuffled rows of each stratum go to training

    Example
    -------
    >>> train, test = split_train_test(df, random_state=42)
    >>> print(train['experiment'].mean(), test['experiment'].mean())
    """
    if not 0 < train_prop < 1:
        raise ValueError(f"train_prop must be between 0 and 1, got {train_prop}")
    if stratify_col not in df.columns:
        raise ValueError(f"DataFrame must have a '{stratify_col}' column")

    shuffled = df.sample(frac=1, random_state=random_state)

    if _needs_manual_split(shuffled[stratify_col], train_prop):
        return _split_by_stratum(shuffled, train_prop, stratify_col)

    train, test = train_test_split(
        shuffled,
        train_size=train_prop,
        stratify=shuffled[stratify_col],
        random_state=random_state,
    )

    return train, test


def prepare_modeling_data(
    control: pd.DataFrame,
    experiment: pd.DataFrame,
    random_state: int = DEFAULT_RANDOM_STATE,
    train_prop: float = DEFAULT_TRAIN_PROP,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Run merge, feature derivation, cleaning and splitting in sequence.

    Returns
    -------
    tuple of pd.DataFrame
        (train, test), both still carrying ``row_id`` for traceability
    """
    merged = merge_groups(control, experiment)
    featured = derive_features(merged)
    cleaned = drop_missing_outcomes(featured)
    return split_train_test(cleaned, random_state=random_state, train_prop=train_prop)
