"""Sammon mapping for nonlinear dimensionality reduction."""

from ._vector_set import VectorSet

__all__ = ["VectorSet"]

__version__ = "0.1.0"
