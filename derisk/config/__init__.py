"""Scoring thresholds and runtime settings."""
