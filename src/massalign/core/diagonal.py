"""Flat storage for banded triangular arrays."""
import numpy as np

from massalign.utils.resources import jit


# Classes --------------------------------------------------------------------------------------------------------------
class DiagonalArray:
    """
    A banded lower triangle stored in a single flat numpy array.

    Row ``n`` (an end position) holds ``min(n + 1, depth)`` cells, cell ``k`` being the block of length ``k + 1``
    ending at ``n``. Rows are laid out back to back so the offset of a row has a closed form.

    Args:
        length: Number of rows.
        depth: Maximal number of cells per row.
        fill: Initial value.
        dtype: Element type.

    Examples:
        >>> d = DiagonalArray(3, 2)
        >>> len(d.data)
        5
        >>> d[2, 1] = 7
        >>> int(d[2, 1])
        7
    """
    __slots__ = ('length', 'depth', 'data')

    def __init__(self, length: int, depth: int, fill=0, dtype=np.int64):
        if depth < 1: raise ValueError(f'Depth must be at least 1, got {depth}')
        self.length = length
        self.depth = depth
        self.data = np.full(self.size(length, depth), fill, dtype=dtype)

    @staticmethod
    def size(length: int, depth: int) -> int:
        """Number of cells needed for ``length`` rows."""
        return int(_tri_offset(length, depth))

    def index(self, n: int, k: int) -> int:
        """Flat index of cell ``k`` in row ``n``."""
        assert 0 <= n < self.length and 0 <= k < min(n + 1, self.depth), f'({n}, {k}) outside the triangle'
        return int(_tri_offset(n, self.depth)) + k

    def __len__(self): return self.length
    def __getitem__(self, item): return self.data[self.index(*item)]
    def __setitem__(self, item, value): self.data[self.index(*item)] = value
    def __repr__(self): return f"DiagonalArray(length={self.length}, depth={self.depth})"


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _tri_offset(n, depth):
    """Offset of row ``n``: a full triangle up to ``depth`` followed by rows of ``depth`` cells."""
    m = min(n, depth)
    return m * (m + 1) // 2 + max(0, n - depth) * depth


@jit(nopython=True, cache=True, nogil=True)
def _tri_index(n, k, depth):
    """Flat index of cell ``k`` in row ``n``, asserting the cell lies inside the band."""
    assert 0 <= n and 0 <= k < min(n + 1, depth)
    return _tri_offset(n, depth) + k
