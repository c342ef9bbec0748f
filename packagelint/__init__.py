"""Semantic validation rules for integration, input and content packages."""

__version__ = "0.1.0"