"""Booklify: EPUB reading position and progress tracking."""

__version__ = "0.1.0"
