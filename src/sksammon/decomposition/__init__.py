"""Distance-preserving dimensionality reduction."""

from ._sammon import MappingResult, SammonMap

__all__ = ["MappingResult", "SammonMap"]
