"""Acta: meeting minutes for residential building administration."""

__version__ = "0.1.0"
