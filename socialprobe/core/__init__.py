"""Extraction engine: normalization, windows, ranking, cascade."""
