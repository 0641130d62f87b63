"""Priority-constrained route optimization service."""

__version__ = "0.1.0"
