"""Invariant sanity checks and conversion significance tests."""
