import numpy as np


def make_two_spheres(n_samples=1024, radius=1.0, offset=2.0):
    """Points on two spheres centered at ``(offset,)*3`` and ``(-offset,)*3``.

    Sample ``i`` sits at angles ``theta = 2*pi*i/n`` and ``phi = pi*i/n``;
    even samples go to the first sphere, odd samples to the second.

    Returns
    -------
    X : ndarray of shape (n_samples, 3)
    """
    i = np.arange(n_samples, dtype=np.float64)
    theta = i / n_samples * 2.0 * np.pi
    phi = i / n_samples * np.pi

    X = radius * np.column_stack(
        [np.cos(theta) * np.sin(phi), np.sin(theta) * np.sin(phi), np.cos(phi)]
    )
    centers = np.where((np.arange(n_samples) % 2 == 0)[:, None], offset, -offset)
    return X + centers


def make_two_clusters(
    n_per_cluster=20,
    radius=1.0,
    centers=((2.0, 2.0, 2.0), (-2.0, -2.0, -2.0)),
    random_state=0,
):
    """Points drawn uniformly inside balls around each center.

    Returns
    -------
    X : ndarray of shape (n_per_cluster * n_centers, n_features)
    labels : ndarray of shape (n_per_cluster * n_centers,)
        Index of the center each point belongs to.
    """
    rng = np.random.default_rng(random_state)
    centers = np.asarray(centers, dtype=np.float64)
    n_features = centers.shape[1]

    blocks = []
    for center in centers:
        direction = rng.standard_normal((n_per_cluster, n_features))
        direction /= np.linalg.norm(direction, axis=1, keepdims=True)
        # r ~ U^(1/d) keeps the density uniform inside the ball
        r = radius * rng.random(n_per_cluster) ** (1.0 / n_features)
        blocks.append(center + direction * r[:, None])

    X = np.vstack(blocks)
    labels = np.repeat(np.arange(len(centers)), n_per_cluster)
    return X, labels


def make_sphere(n_samples=50, radius=1.0):
    """Evenly spread points on a sphere (Fibonacci lattice).

    Returns
    -------
    X : ndarray of shape (n_samples, 3)
    """
    i = np.arange(n_samples, dtype=np.float64) + 0.5
    z = 1.0 - 2.0 * i / n_samples
    rho = np.sqrt(1.0 - z**2)
    golden_angle = np.pi * (3.0 - np.sqrt(5.0))
    theta = golden_angle * i
    return radius * np.column_stack([rho * np.cos(theta), rho * np.sin(theta), z])


def make_tetrahedron(edge=1.0):
    """Vertices of a regular tetrahedron centered at the origin."""
    vertices = np.array(
        [
            [1.0, 1.0, 1.0],
            [1.0, -1.0, -1.0],
            [-1.0, 1.0, -1.0],
            [-1.0, -1.0, 1.0],
        ]
    )
    # The unit vertices above are 2*sqrt(2) apart.
    return vertices * edge / (2.0 * np.sqrt(2.0))
