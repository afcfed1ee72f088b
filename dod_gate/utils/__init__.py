"""Utility modules for the Definition of Done gate."""
