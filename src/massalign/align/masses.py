"""Per-sequence block-mass caches and the residue encodings used by the alignment kernels."""
from functools import reduce
from typing import Iterable

import numpy as np

from massalign.core.diagonal import DiagonalArray
from massalign.core.tolerance import Tolerance
from massalign.utils.protocols import MassSequence


# Functions ------------------------------------------------------------------------------------------------------------
def combine(masses: np.ndarray, residue_masses: Iterable[float]) -> np.ndarray:
    """Extends a set of block masses by one residue: every pairwise sum, deduplicated."""
    residue_masses = np.asarray(residue_masses, dtype=np.float64)
    return np.unique(np.add.outer(masses, residue_masses).ravel())


def block_masses(residues: Iterable) -> np.ndarray:
    """All candidate total masses of a run of residues."""
    return reduce(lambda acc, r: combine(acc, r.masses), residues, np.zeros(1, dtype=np.float64))


def encode(sequence: MassSequence, interner: dict = None) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Per residue integer encodings used by the kernels.

    Args:
        sequence: The sequence to encode.
        interner: Residue to identity id mapping, extended in place. Two residues share an id only if they are
            equal (same amino acid and modifications); pass the same mapping for every sequence compared.

    Returns:
        Scoring matrix codes, identity ids (all -1 without an interner) and modified flags.
    """
    codes = np.array([r.code for r in sequence], dtype=np.int64)
    modified = np.array([r.is_modified for r in sequence], dtype=np.bool_)
    if interner is None: return codes, np.full(len(codes), -1, dtype=np.int64), modified
    ids = np.array([interner.setdefault(r, len(interner)) for r in sequence], dtype=np.int64)
    return codes, ids, modified


# Classes --------------------------------------------------------------------------------------------------------------
class BlockMassCache:
    """
    The candidate masses of every block of up to ``steps`` residues of a sequence.

    Blocks are addressed by ``(end, length)`` over a ``DiagonalArray``; the multisets are stored CSR style, one
    run of ``values`` per cell, next to their exact lowest and highest mass. A block containing a residue without
    any mass (``X``) has an empty multiset and the degenerate range ``(inf, -inf)``.

    Args:
        sequence: The sequence to cache.
        steps: Maximal block length.

    Examples:
        >>> cache = BlockMassCache(Peptide.parse('GGN'), steps=2)
        >>> cache.masses(1, 2)
        array([114.042928])
    """
    __slots__ = ('length', 'steps', 'sizes', 'starts', 'values', 'lower', 'upper', '_expanded')

    def __init__(self, sequence: MassSequence, steps: int = 4):
        self.length = len(sequence)
        self.steps = steps
        self.sizes = DiagonalArray(self.length, steps)
        blocks = []
        previous = []
        for end in range(self.length):
            own = np.unique(np.asarray(sequence[end].masses, dtype=np.float64))
            # Block of length k + 1 ending here is the block of length k ending one residue earlier, plus this one
            current = [own] + [combine(previous[k - 1], own) for k in range(1, min(end + 1, steps))]
            for k, block in enumerate(current): self.sizes[end, k] = len(block)
            blocks.extend(current)
            previous = current
        self.starts = np.zeros(len(blocks) + 1, dtype=np.int64)
        np.cumsum(self.sizes.data, out=self.starts[1:])
        self.values = np.concatenate(blocks) if blocks else np.empty(0, dtype=np.float64)
        self.lower = np.array([b[0] if len(b) else np.inf for b in blocks], dtype=np.float64)
        self.upper = np.array([b[-1] if len(b) else -np.inf for b in blocks], dtype=np.float64)
        self._expanded = {}

    def __len__(self): return self.length
    def __repr__(self): return f"BlockMassCache(length={self.length}, steps={self.steps})"

    def index(self, end: int, length: int) -> int:
        """Flat cell index of the block of ``length`` residues ending at ``end``."""
        return self.sizes.index(end, length - 1)

    def masses(self, end: int, length: int) -> np.ndarray:
        """Sorted candidate masses of a block."""
        start = self.starts[self.index(end, length)]
        return self.values[start:start + self.sizes[end, length - 1]]

    def bounds(self, end: int, length: int) -> tuple[float, float]:
        i = self.index(end, length)
        return float(self.lower[i]), float(self.upper[i])

    def expanded(self, tolerance: Tolerance) -> tuple[np.ndarray, np.ndarray]:
        """Lowest and highest mass still matching each block, cached per tolerance."""
        if (ranges := self._expanded.get(tolerance)) is None:
            ranges = self._expanded[tolerance] = tolerance.expand(self.lower, self.upper)
        return ranges


class MassProfile:
    """
    A sequence together with everything the kernels need from it.

    Built once per sequence and reused for every alignment the sequence takes part in.

    Args:
        sequence: The sequence.
        steps: Maximal block length.
    """
    __slots__ = ('sequence', 'cache', 'codes', 'modified')

    def __init__(self, sequence: MassSequence, steps: int = 4):
        self.sequence = sequence
        self.cache = BlockMassCache(sequence, steps)
        self.codes, _, self.modified = encode(sequence)

    def __len__(self): return len(self.cache)

    @property
    def steps(self) -> int: return self.cache.steps
