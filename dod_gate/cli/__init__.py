"""Command-line interface for the Definition of Done gate."""
