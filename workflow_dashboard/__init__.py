"""Workflow Dashboard - backend for running catalog agents against projects."""

__version__ = "0.1.0"
