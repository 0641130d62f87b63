"""Route group exports."""

from . import health, jobs, optimize

__all__ = ["health", "jobs", "optimize"]
