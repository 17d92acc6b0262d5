"""Fusion engine: confidence-weighted combination of detector readings."""
