"""FABOT: chat proxy with automatic conversation analysis."""

__version__ = "0.1.0"
