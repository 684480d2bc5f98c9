"""Recorded landmark stream readers."""
