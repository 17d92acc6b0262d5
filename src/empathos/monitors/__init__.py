"""Orchestration rules evaluated against each new state."""
