"""Trilhos - GPS route tracking."""

__version__ = "0.1.0"
