"""Bounded, time-ordered state history."""
