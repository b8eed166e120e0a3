import os
import tempfile
from abc import ABC, abstractmethod

import joblib

from .._vector_set import VectorSet


class Store(ABC):
    """Key-value storage for pre-computed results."""

    @abstractmethod
    def exists(self, key):
        """Return True if ``key`` is stored."""

    @abstractmethod
    def get(self, key):
        """Return the value stored under ``key``.

        Raises
        ------
        KeyError
            If nothing is stored under ``key``.
        """

    @abstractmethod
    def put(self, key, value):
        """Store ``value`` under ``key``, overwriting any previous value."""

    @abstractmethod
    def remove(self, key):
        """Delete ``key``. Removing a missing key does nothing."""


class MemoryStore(Store):
    def __init__(self):
        self._data = {}

    def exists(self, key):
        return key in self._data

    def get(self, key):
        return self._data[key]

    def put(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)

    def __len__(self):
        return len(self._data)


class DiskStore(Store):
    """Store that keeps one joblib pickle per key in ``directory``.

    Keys are hashed into file names, so any string is a valid key.
    """

    def __init__(self, directory):
        self.directory = os.fspath(directory)
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, key):
        return os.path.join(self.directory, joblib.hash(key) + ".joblib")

    def exists(self, key):
        return os.path.exists(self._path(key))

    def get(self, key):
        path = self._path(key)
        if not os.path.exists(path):
            raise KeyError(key)
        return joblib.load(path)

    def put(self, key, value):
        # Dump next to the target and rename, so readers never see a partial file.
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        os.close(fd)
        try:
            joblib.dump(value, tmp_path)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove(self, key):
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


_FINGERPRINT_PARAMS = (
    "n_components",
    "alpha",
    "tol",
    "max_iter",
    "epsilon",
    "denominator_epsilon",
    "random_state",
)


def fingerprint(x, estimator):
    """Key identifying the mapping of ``x`` by ``estimator``.

    Hashes the source points together with every estimator parameter that
    changes the result.
    """
    params = estimator.get_params(deep=False)
    config = {name: params[name] for name in _FINGERPRINT_PARAMS}
    return "sammon:" + joblib.hash((x.dimensionality, x.points, config))


def cached_map(estimator, x, store):
    """Run ``estimator.map(x)`` unless the result is already in ``store``.

    Parameters
    ----------
    estimator : SammonMap
        Configured estimator.
    x : VectorSet
        Source configuration.
    store : Store
        Where mappings are kept, keyed by :func:`fingerprint`.

    Returns
    -------
    y : VectorSet
        The low-dimensional configuration.
    """
    key = fingerprint(x, estimator)
    if store.exists(key):
        return VectorSet.from_array(store.get(key))

    y = estimator.map(x)
    store.put(key, y.points)
    return y
