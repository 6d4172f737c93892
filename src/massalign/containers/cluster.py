"""Container for a group of mutually aligned lines."""
from typing import Iterable


# Classes --------------------------------------------------------------------------------------------------------------
class Cluster:
    """
    A group of lines that were already aligned to each other during the progressive merge.

    Args:
        lines: The aligned lines, all spanning the same number of columns.
        id_: Optional cluster identifier.
        score: Accumulated score of the merges that built this cluster, None for a single sequence.

    Examples:
        >>> c = Cluster([AlignedLine.single(0, Peptide.parse('PEPTIDE'))], id_=0)
        >>> len(c), c.columns
        (1, 7)
    """
    __slots__ = ('_members', 'id', 'score')

    def __init__(self, lines: Iterable, id_=None, score=None):
        self._members = list(lines)
        self.id = id_
        self.score = score

    def __len__(self): return len(self._members)
    def __iter__(self): return iter(self._members)
    def __getitem__(self, item): return self._members[item]
    def __repr__(self): return f"Cluster(size={len(self._members)}, columns={self.columns})"

    @property
    def lines(self) -> list: return self._members

    @property
    def columns(self) -> int:
        """Number of alignment columns."""
        return max((line.ref_length for line in self._members), default=0)
