"""Persona-driven decision engine: score, rank and gate candidate actions per persona."""

__version__ = "0.1.0"
