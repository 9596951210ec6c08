"""Specific-gravity correction and fermentation tracking for cider production."""

__version__ = "0.1.0"
