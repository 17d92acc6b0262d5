"""Affect mapping: valence / arousal from the fused cognitive model."""
