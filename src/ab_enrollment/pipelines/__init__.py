"""
Pipeline demonstrations.

Available pipelines:
- enrollment_pipeline: Sanity checks, conversion tests and enrollment
  modeling on daily control/experiment funnel data
"""

# Lazy import so that `python -m ab_enrollment.pipelines.enrollment_pipeline`
# does not import the module twice

__all__ = [
    'run_enrollment_analysis',
]


def __getattr__(name: str):
    """Lazy import pipeline functions on first access."""
    if name == 'run_enrollment_analysis':
        from ab_enrollment.pipelines.enrollment_pipeline import run_enrollment_analysis
        return run_enrollment_analysis
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
