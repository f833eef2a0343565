"""Enrollment regression models."""
