"""
Data Loading Utilities for Daily A/B Funnel Datasets
====================================================

This module loads the two daily-aggregate files of an A/B experiment
(control and experiment) and validates them against a fixed schema.

Datasets:
---------
1. Udacity Free Trial Screener (2 x 37 days)
   - Source: Udacity A/B Testing course final project
   - Use: Invariant sanity checks, conversion tests, enrollment modeling

Each file holds one row per day with columns:
    Date, Pageviews, Clicks, Enrollments, Payments

Example Usage:
--------------
>>> from ab_enrollment.data import loaders
>>>
>>> # Load both groups from ./data/raw/udacity_ab/
>>> control, experiment = loaders.load_ab_data()
>>>
>>> # Or generate a reproducible synthetic pair with the same schema
>>> control, experiment = loaders.generate_synthetic_ab_data(random_state=42)
"""

from pathlib import Path
from typing import Optional, Dict, Any, Tuple, Union

import pandas as pd
import numpy as np

from ab_enrollment.exceptions import MissingFileError, ParseError


PathLike = Union[str, Path]

DEFAULT_DATA_DIR = "./data/raw/udacity_ab"
CONTROL_FILE = "control.csv"
EXPERIMENT_FILE = "experiment.csv"

REQUIRED_COLUMNS = ["date", "pageviews", "clicks", "enrollments", "payments"]
COUNT_COLUMNS = ["pageviews", "clicks", "enrollments", "payments"]
# Outcome columns may be blank for days whose results were not yet observed
NULLABLE_COLUMNS = ["enrollments", "payments"]
COLUMN_ALIASES = {"page_views": "pageviews"}

# Dataset metadata registry
DATASETS = {
    "udacity_ab": {
        "name": "Udacity Free Trial Screener Experiment",
        "source": "Udacity A/B Testing course, final project data",
        "size": 74,
        "description": "Daily funnel counts for a course-page checkout change (control vs. experiment)",
        "features": ["date", "pageviews", "clicks", "enrollments", "payments"],
        "citation": "Udacity / Google, A/B Testing course final project",
    },
}


def get_dataset_info(dataset_name: str) -> Dict[str, Any]:
    """
    Get metadata about available datasets.

    Parameters
    ----------
    dataset_name : str
        One of: 'udacity_ab'

    Returns
    -------
    dict
        Dataset metadata including source, size, citation
    """
    if dataset_name not in DATASETS:
        raise ValueError(
            f"Unknown dataset '{dataset_name}'. "
            f"Available: {list(DATASETS.keys())}"
        )
    return DATASETS[dataset_name]


def load_group_file(path: PathLike) -> pd.DataFrame:
    """
    Load one group's daily observations and validate the schema.

    Parameters
    ----------
    path : str or Path
        Delimited text file with a header row

    Returns
    -------
    pd.DataFrame
        Columns (in order): date, pageviews, clicks, enrollments, payments.
        ``date`` is a stripped string; count columns are numeric, with NaN
        allowed only in enrollments and payments.

    Raises
    ------
    MissingFileError
        If the file does not exist
    ParseError
        If the file is empty or malformed, required columns are absent,
        counts are non-numeric, negative or fractional, or
        date/pageviews/clicks have blanks

    Example
    -------
    >>> df = load_group_file("./data/raw/udacity_ab/control.csv")
    >>> print(df.columns.tolist())
    ['date', 'pageviews', 'clicks', 'enrollments', 'payments']
    """
    file_path = Path(path)

    if not file_path.exists():
        raise MissingFileError(
            f"Dataset not found at: {file_path}\n\n"
            "Expected a CSV with columns: Date, Pageviews, Clicks, Enrollments, Payments\n"
            f"Default location: {DEFAULT_DATA_DIR}/{{{CONTROL_FILE},{EXPERIMENT_FILE}}}"
        )

    try:
        df = pd.read_csv(file_path)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Could not parse {file_path}: {e}") from e

    # Standardize column names (remove spaces, lowercase)
    df.columns = df.columns.str.strip().str.lower().str.replace(" ", "_")
    df = df.rename(columns=COLUMN_ALIASES)

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ParseError(
            f"{file_path} is missing required columns {missing}. "
            f"Found: {df.columns.tolist()}"
        )
    if len(df) == 0:
        raise ParseError(f"{file_path} contains a header but no rows")

    df = df[REQUIRED_COLUMNS].copy()

    for col in COUNT_COLUMNS:
        try:
            df[col] = pd.to_numeric(df[col], errors="raise")
        except (ValueError, TypeError) as e:
            raise ParseError(f"Non-numeric value in column '{col}' of {file_path}: {e}") from e

    required_present = [col for col in REQUIRED_COLUMNS if col not in NULLABLE_COLUMNS]
    blank = df[required_present].isna().any()
    if blank.any():
        raise ParseError(
            f"{file_path} has blank values in required columns "
            f"{blank[blank].index.tolist()}"
        )

    counts = df[COUNT_COLUMNS]
    invalid = (counts.notna() & ((counts < 0) | (counts % 1 != 0))).any()
    if invalid.any():
        raise ParseError(
            f"{file_path} has negative or fractional counts in columns "
            f"{invalid[invalid].index.tolist()}"
        )

    df["date"] = df["date"].astype(str).str.strip()

    return df


def load_ab_data(
    control_path: Optional[PathLike] = None,
    experiment_path: Optional[PathLike] = None,
    data_dir: Optional[PathLike] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the control and experiment datasets.

    Parameters
    ----------
    control_path : str or Path, optional
        Control file. Default: ``<data_dir>/control.csv``
    experiment_path : str or Path, optional
        Experiment file. Default: ``<data_dir>/experiment.csv``
    data_dir : str or Path, optional
        Directory used for defaults. Default: './data/raw/udacity_ab'

    Returns
    -------
    tuple of pd.DataFrame
        (control, experiment), each validated by ``load_group_file``

    Raises
    ------
    MissingFileError, ParseError
        Propagated from ``load_group_file``
    """
    if data_dir is None:
        data_dir = DEFAULT_DATA_DIR
    data_dir = Path(data_dir)

    if control_path is None:
        control_path = data_dir / CONTROL_FILE
    if experiment_path is None:
        experiment_path = data_dir / EXPERIMENT_FILE

    control = load_group_file(control_path)
    experiment = load_group_file(experiment_path)

    return control, experiment


def generate_synthetic_ab_data(
    n_days: int = 37,
    missing_outcome_days: int = 14,
    random_state: int = 42,
    start_date: str = "2014-10-11",
    treatment_effect: float = -0.02,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Generate a reproducible control/experiment pair with the loader schema.

    Daily pageviews are drawn around 9,000 with ~8% click-through, ~20% of
    clicks enrolling and ~50% of enrollments paying. The experiment group's
    enrollment rate is shifted by ``treatment_effect``.

    Parameters
    ----------
    n_days : int, default=37
        Days per group
    missing_outcome_days : int, default=14
        Trailing days whose enrollments and payments are left blank
    random_state : int, default=42
        Random seed
    start_date : str, default='2014-10-11'
        First calendar day
    treatment_effect : float, default=-0.02
        Absolute change in enrollment rate (enrollments / clicks) for the
        experiment group

    Returns
    -------
    tuple of pd.DataFrame
        (control, experiment) with string dates like 'Sat, Oct 11'
    """
    if n_days <= 0:
        raise ValueError("n_days must be positive")
    if not 0 <= missing_outcome_days <= n_days:
        raise ValueError("missing_outcome_days must be between 0 and n_days")

    rng = np.random.default_rng(random_state)
    dates = pd.date_range(start_date, periods=n_days, freq="D").strftime("%a, %b %d")

    def _group(enroll_rate: float) -> pd.DataFrame:
        pageviews = rng.poisson(9000, n_days)
        clicks = rng.binomial(pageviews, 0.08)
        enrollments = rng.binomial(clicks, enroll_rate).astype(float)
        payments = rng.binomial(enrollments.astype(int), 0.5).astype(float)
        if missing_outcome_days:
            enrollments[-missing_outcome_days:] = np.nan
            payments[-missing_outcome_days:] = np.nan
        return pd.DataFrame({
            "date": list(dates),
            "pageviews": pageviews,
            "clicks": clicks,
            "enrollments": enrollments,
            "payments": payments,
        })

    control = _group(0.20)
    experiment = _group(0.20 + treatment_effect)

    return control, experiment
