"""Synthetic point sets."""

from ._samples import make_sphere, make_tetrahedron, make_two_clusters, make_two_spheres

__all__ = ["make_sphere", "make_tetrahedron", "make_two_clusters", "make_two_spheres"]
