"""The dense dynamic programming matrix: initialisation, filling and traceback."""
from typing import Sequence

import numpy as np

from massalign.align.align_type import AlignType
from massalign.align.masses import MassProfile, encode
from massalign.align.piece import Piece
from massalign.align.scoring import AlignScoring
from massalign.core.tolerance import Tolerance
from massalign.engines.mass import MatchType, _fill_kernel


# Functions ------------------------------------------------------------------------------------------------------------
def pack_side(profiles: Sequence[MassProfile], cuts: np.ndarray, interner: dict, tolerance: Tolerance = None,
              gaps: np.ndarray = None) -> tuple:
    """
    Concatenates the per line arrays of one side of the matrix into the tuple consumed by the fill kernel.

    Args:
        profiles: One profile per line.
        cuts: Residue counts at the piece boundaries of every line, ``-1`` inside pieces.
        interner: Shared residue to identity id mapping, the same for both sides of a matrix.
        tolerance: Widen the block ranges by this tolerance, exact ranges if None.
        gaps: Number of gap columns before every column of every line, none if None.
    """
    n = len(profiles)
    if gaps is None: gaps = np.zeros_like(cuts)
    residue_base = np.zeros(n, dtype=np.int64)
    cell_base = np.zeros(n, dtype=np.int64)
    ids, starts, ends, lower, upper = [], [], [], [], []
    residues = cells = values = 0
    for i, profile in enumerate(profiles):
        residue_base[i], cell_base[i] = residues, cells
        cache = profile.cache
        ids.append(encode(profile.sequence, interner)[1])
        starts.append(cache.starts[:-1] + values)
        ends.append(cache.starts[1:] + values)
        lo, hi = cache.expanded(tolerance) if tolerance is not None else (cache.lower, cache.upper)
        lower.append(lo)
        upper.append(hi)
        residues += len(profile)
        cells += len(cache.lower)
        values += len(cache.values)
    return (
        np.ascontiguousarray(cuts, dtype=np.int64), np.ascontiguousarray(gaps, dtype=np.int64), residue_base,
        np.concatenate([p.codes for p in profiles]),
        np.concatenate(ids),
        np.concatenate([p.modified for p in profiles]),
        cell_base,
        np.concatenate(lower).astype(np.float64), np.concatenate(upper).astype(np.float64),
        np.concatenate(starts), np.concatenate(ends),
        np.concatenate([p.cache.values for p in profiles]).astype(np.float64)
    )


def sequence_cuts(length: int) -> np.ndarray:
    """Cuts of a plain sequence: every column is one residue."""
    return np.arange(length + 1, dtype=np.int64)[None, :]


# Classes --------------------------------------------------------------------------------------------------------------
class AlignMatrix:
    """
    A ``(len_a + 1) x (len_b + 1)`` grid holding the best piece reaching every cell.

    Pieces are kept as parallel numpy arrays so the fill kernel can work on them directly; indexing the matrix
    returns a ``Piece``.

    Args:
        len_a: Length (residues or columns) of the first side.
        len_b: Length (residues or columns) of the second side.
    """
    __slots__ = ('len_a', 'len_b', 'score', 'local', 'kind', 'step_a', 'step_b')

    def __init__(self, len_a: int, len_b: int):
        self.len_a = len_a
        self.len_b = len_b
        shape = (len_a + 1, len_b + 1)
        self.score = np.zeros(shape, dtype=np.int64)
        self.local = np.zeros(shape, dtype=np.int64)
        self.kind = np.full(shape, MatchType.MISMATCH, dtype=np.int64)
        self.step_a = np.zeros(shape, dtype=np.int64)
        self.step_b = np.zeros(shape, dtype=np.int64)

    @property
    def shape(self): return self.score.shape
    def __repr__(self): return f"AlignMatrix({self.len_a}x{self.len_b})"

    def __getitem__(self, item) -> Piece:
        i, j = item
        return Piece(self.score[i, j], self.local[i, j], self.kind[i, j], self.step_a[i, j], self.step_b[i, j])

    def global_start(self, is_a: bool, scoring: AlignScoring):
        """Seeds the first column (``is_a``) or row with the cumulative cost of an opening gap."""
        n = self.len_a if is_a else self.len_b
        index = np.arange(n + 1, dtype=np.int64)
        score = scoring.gap_start + index * scoring.gap_extend
        score[0] = 0
        local = np.full(n + 1, scoring.gap_extend, dtype=np.int64)
        local[0] = 0
        if n: local[1] = scoring.gap_start + scoring.gap_extend
        step = (index != 0).astype(np.int64)
        cells = (slice(None), 0) if is_a else (0, slice(None))
        self.score[cells] = score
        self.local[cells] = local
        self.kind[cells] = MatchType.GAP
        self.step_a[cells] = step if is_a else 0
        self.step_b[cells] = 0 if is_a else step

    def fill(self, side_a: tuple, side_b: tuple, scoring: AlignScoring, align_type: AlignType,
             steps: int) -> tuple[int, int, int]:
        """
        Runs the recurrence over the whole matrix.

        Args:
            side_a: Packed arrays of the first side (see ``pack_side``), ranges widened by the tolerance.
            side_b: Packed arrays of the second side, exact ranges.
            scoring: Scoring weights.
            align_type: Anchoring, locally anchored starts reset non positive cells to empty.
            steps: Maximal block length.

        Returns:
            The score and position of the last best scoring cell.
        """
        if align_type.left.global_a(): self.global_start(True, scoring)
        if align_type.left.global_b(): self.global_start(False, scoring)
        tol = scoring.tolerance
        high = _fill_kernel(self.score, self.local, self.kind, self.step_a, self.step_b, side_a, side_b,
                            scoring.matrix.data, scoring.params, int(tol.kind), float(tol.value), steps,
                            align_type.left.global_())
        return int(high[0]), int(high[1]), int(high[2])

    @staticmethod
    def _last_max(values: np.ndarray) -> int:
        return len(values) - 1 - int(np.argmax(values[::-1]))

    def find_end(self, align_type: AlignType, high: tuple[int, int, int]) -> tuple[int, int, int]:
        """Picks the cell the traceback starts from, depending on how the right end is anchored."""
        right, a, b = align_type.right, self.len_a, self.len_b
        if right.global_a() and right.global_b(): return int(self.score[a, b]), a, b
        last_column, last_row = self.score[:, b], self.score[a, :]
        if right.global_b():
            i = self._last_max(last_column)
            return int(last_column[i]), i, b
        if right.global_a():
            j = self._last_max(last_row)
            return int(last_row[j]), a, j
        if right.global_():
            i, j = self._last_max(last_column), self._last_max(last_row)
            if last_column[i] >= last_row[j]: return int(last_column[i]), i, b
            return int(last_row[j]), a, j
        return high

    def trace_path(self, align_type: AlignType, high: tuple[int, int, int]) -> tuple[int, int, list[Piece]]:
        """
        Follows the stored pieces back from the end cell.

        Stops at a cell without a predecessor (both steps zero); for a locally anchored start also at the first
        negative cell.

        Returns:
            The start on both sides and the path in forward order.
        """
        _, i, j = self.find_end(align_type, high)
        left_global = align_type.left.global_()
        path = []
        while left_global or not (i == 0 and j == 0):
            piece = self[i, j]
            if (piece.step_a == 0 and piece.step_b == 0) or (not left_global and piece.score < 0): break
            i, j = max(i - piece.step_a, 0), max(j - piece.step_b, 0)
            path.append(piece)
        path.reverse()
        return i, j, path
