"""Move git commit dates out of working hours."""

__version__ = "0.1.0"
