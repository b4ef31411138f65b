"""eacchain - content-addressed record graph and chain publisher for EAC transactions."""

__version__ = "0.1.0"
