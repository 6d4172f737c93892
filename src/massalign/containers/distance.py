"""Symmetric distance matrix with average linkage merging."""
from typing import Iterable, Union

import numpy as np
from scipy.spatial.distance import squareform


# Classes --------------------------------------------------------------------------------------------------------------
class DistanceMatrix:
    """
    Pairwise distances between clusters, stored condensed (upper triangle, row major) as scipy does.

    Every entry also tracks the size of its cluster, so merging two clusters can weigh the distances of both
    by the number of sequences they hold (UPGMA).

    Args:
        condensed: The condensed distances.
        sizes: Cluster sizes, all 1 by default.

    Examples:
        >>> d = DistanceMatrix([1, 4, 2])
        >>> d.min()
        (0, 1, 1.0)
        >>> d.merge(0, 1)
        >>> float(d[0, 1])
        3.0
    """
    _DTYPE = np.float64
    __slots__ = ('_data', '_sizes', '_n')

    def __init__(self, condensed: Union[np.ndarray, Iterable], sizes: Iterable[int] = None):
        self._data = np.asarray(condensed, dtype=self._DTYPE).ravel()
        n = int(round((1 + np.sqrt(1 + 8 * len(self._data))) / 2))
        if n * (n - 1) // 2 != len(self._data): raise ValueError(f'{len(self._data)} is not a condensed matrix size')
        self._n = n
        self._sizes = list(sizes) if sizes is not None else [1] * n
        if len(self._sizes) != n: raise ValueError(f'Expected {n} cluster sizes, got {len(self._sizes)}')

    def __len__(self): return self._n
    def __repr__(self): return f"DistanceMatrix(n={self._n})"

    @property
    def sizes(self) -> tuple[int, ...]: return tuple(self._sizes)

    def _index(self, i: int, j: int) -> int:
        if i > j: i, j = j, i
        return self._n * i - i * (i + 1) // 2 + (j - i - 1)

    def __getitem__(self, item):
        i, j = item
        return self._DTYPE(0) if i == j else self._data[self._index(i, j)]

    def __setitem__(self, item, value):
        i, j = item
        if i == j: raise IndexError('The diagonal of a distance matrix is fixed at 0')
        self._data[self._index(i, j)] = value

    def min(self) -> tuple[int, int, float]:
        """
        The closest pair of clusters.

        Ties are broken towards the lowest row, then the lowest column.

        Returns:
            ``(i, j, distance)`` with ``i < j``.
        """
        if self._n < 2: raise ValueError('A distance matrix needs at least two entries to have a minimum')
        k = int(np.argmin(self._data))  # First occurrence in row major order
        rows, cols = np.triu_indices(self._n, 1)
        return int(rows[k]), int(cols[k]), float(self._data[k])

    def merge(self, i: int, j: int):
        """
        Replaces clusters ``i`` and ``j`` by their union, kept at the lower index.

        The distance of the union to any other cluster is the size weighted mean of the two old distances.
        """
        if i > j: i, j = j, i
        square = squareform(self._data)
        n_i, n_j = self._sizes[i], self._sizes[j]
        row = (n_i * square[i] + n_j * square[j]) / (n_i + n_j)
        square[i, :] = row
        square[:, i] = row
        square[i, i] = 0
        square = np.delete(np.delete(square, j, axis=0), j, axis=1)
        self._data = squareform(square, checks=False)
        self._sizes[i] = n_i + n_j
        del self._sizes[j]
        self._n -= 1

    def to_square(self) -> np.ndarray: return squareform(self._data)

    def to_csv(self, labels: Iterable[str] = None) -> str:
        """Renders the matrix as comma separated text, with an optional header of cluster labels."""
        labels = list(labels) if labels is not None else [str(i) for i in range(self._n)]
        square = self.to_square()
        lines = [',' + ','.join(labels)]
        lines.extend(f'{label},' + ','.join(f'{v:.4f}' for v in row) for label, row in zip(labels, square))
        return '\n'.join(lines)
