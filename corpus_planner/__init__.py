"""Retirement corpus projection and optimization engine."""

__version__ = "0.1.0"
