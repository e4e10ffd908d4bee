"""Daytrace command-line interface."""
