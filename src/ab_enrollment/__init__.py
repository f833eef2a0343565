"""
A/B Enrollment Modeling
=======================

Analyze a daily-aggregate A/B test (control vs. experiment) and model which
measured factors drive enrollments.

Modules:
--------
- data: Dataset loaders and the merge/clean/split preparation steps
- core: Invariant sanity checks and conversion significance tests
- models: Linear, decision tree and gradient boosting enrollment models
- pipelines: End-to-end analysis runner

Example Usage:
--------------
>>> from ab_enrollment.data import loaders, preparation
>>> from ab_enrollment.models import estimators
>>>
>>> control, experiment = loaders.load_ab_data(data_dir="./data/raw/udacity_ab")
>>> train, test = preparation.prepare_modeling_data(control, experiment, random_state=42)
>>> results, table = estimators.compare_models(train, test, random_state=42)

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Expose key modules at package level for convenience
from ab_enrollment.data import loaders, preparation
from ab_enrollment.core import frequentist, randomization
from ab_enrollment.models import estimators

__all__ = [
    "loaders",
    "preparation",
    "frequentist",
    "randomization",
    "estimators",
]
