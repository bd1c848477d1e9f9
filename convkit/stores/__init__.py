"""Persistent side-car state written by convkit commands."""
