"""Detector-facing reading collectors."""
