"""Hyperlocal weather and land-cover dataset builder."""

__version__ = "0.1.0"
