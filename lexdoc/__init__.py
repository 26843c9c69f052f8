"""Lexdoc — legal document conversion engine."""

__version__ = "0.1.0"
