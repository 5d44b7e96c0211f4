"""Rules engine for the 2048 sliding-tile merge puzzle."""

__version__ = "1.0.0"
