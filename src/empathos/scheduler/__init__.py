"""Periodic cycle scheduling."""
