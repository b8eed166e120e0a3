#!/usr/bin/env python
# coding: utf-8

"""
Sammon mapping of two spheres
=============================

This example maps points lying on two spheres in 3-D space down to the plane
with `SammonMap`, checks how well the pairwise distances survived, and plots
the result. Repeated runs with the same parameters are served from a
`DiskStore` instead of being recomputed.
"""

# %%
import numpy as np
from matplotlib import pyplot as plt
from scipy.spatial.distance import pdist

from sksammon import VectorSet
from sksammon.datasets import make_two_spheres
from sksammon.decomposition import SammonMap
from sksammon.utils import DiskStore, cached_map


# %%
#
# Build the source set: 512 points, alternating between a sphere of radius 1
# around (2, 2, 2) and one around (-2, -2, -2).

X = make_two_spheres(n_samples=512)
x = VectorSet.from_array(X)
labels = np.arange(len(X)) % 2

print(f"Source set: {len(x)} points in {x.dimensionality} dimensions")


# %%
#
# Map to two dimensions. The step size is clamped to [0.3, 0.4]; the
# iteration stops when the squared coordinate change of an iteration falls
# below ``tol`` or after ``max_iter`` iterations.

sm = SammonMap(n_components=2, alpha=0.35, max_iter=2000, random_state=0, verbose=1)
store = DiskStore("sammon_cache")
y = cached_map(sm, x, store)


# %%
#
# Compare the original and mapped distances. Sammon mapping weights every
# pair by the inverse of its original distance, so the short within-sphere
# distances are reproduced more faithfully than the long ones.

d_hd = pdist(X)
d_ld = pdist(y.points)
print(f"Relative distance error: {np.mean(np.abs(d_hd - d_ld) / d_hd):.4f}")


# %%
#
# Plot the embedding, one coordinate sequence per axis.

fig, axes = plt.subplots(1, 2, figsize=(12, 5))

axes[0].scatter(y.get_dim_data(0), y.get_dim_data(1), c=labels, s=15, cmap="coolwarm")
axes[0].set_title("Sammon projection in 2D")
axes[0].set_xlabel("Dimension 1")
axes[0].set_ylabel("Dimension 2")

axes[1].scatter(d_hd, d_ld, s=2, alpha=0.3)
axes[1].plot([0, d_hd.max()], [0, d_hd.max()], "k--", lw=1)
axes[1].set_title("Pairwise distances")
axes[1].set_xlabel("Original distance")
axes[1].set_ylabel("Mapped distance")

fig.tight_layout()
plt.show()
