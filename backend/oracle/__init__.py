"""Oracle: prediction lifecycle and scoring engine for the Oracle Challenge game."""

__version__ = "0.1.0"
__author__ = "Oracle Challenge Team"

__all__ = ["__version__", "__author__"]
