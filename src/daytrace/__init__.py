"""Daytrace — screen activity capture and retrieval."""

__version__ = "0.1.0"
