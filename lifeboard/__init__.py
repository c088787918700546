"""Lifeboard - personal dashboard backend and client state layer"""

__version__ = "1.0.0"
