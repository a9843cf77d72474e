"""Data orchestration for the Calcana supplier, property and analysis lists."""

__version__ = "0.4.0"
