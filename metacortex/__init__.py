"""Metacortex - pattern lifecycle engine for recurring workflow phases."""

__version__ = "0.1.0"
