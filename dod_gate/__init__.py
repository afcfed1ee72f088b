"""Definition of Done gate: weighted readiness checks with hashed receipts."""

__version__ = "1.0.0"
