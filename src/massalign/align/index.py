"""A reusable set of sequences with their block masses computed once."""
from typing import Callable, Iterable, Optional, Sequence

from massalign.align.align_type import AlignType
from massalign.align.masses import MassProfile
from massalign.align.multi import MultiAlignment, progressive_align
from massalign.align.pairwise import Alignment, align_cached
from massalign.align.scoring import AlignScoring
from massalign.utils.protocols import MassSequence


# Classes --------------------------------------------------------------------------------------------------------------
class AlignIndex:
    """
    Sequences prepared for repeated alignment.

    The block masses and residue encodings of every sequence are computed when the index is built, so aligning
    many queries against it, or aligning all of it progressively, never repeats that work.

    Args:
        sequences: The sequences to index.
        steps: Maximal block length.

    Examples:
        >>> index = AlignIndex([Peptide.parse('ANGARS'), Peptide.parse('PEPTIDE')])
        >>> [a.short() for a in index.align_one(Peptide.parse('AGGQRS'))][0]
        '1=1:2i2:1i2='
    """
    __slots__ = ('_profiles', '_steps')

    def __init__(self, sequences: Iterable[MassSequence], steps: int = 4):
        if steps < 1: raise ValueError(f'The maximal block length must be at least 1, got {steps}')
        self._steps = steps
        self._profiles = [MassProfile(s, steps) for s in sequences]

    def __len__(self): return len(self._profiles)
    def __getitem__(self, item) -> MassSequence: return self._profiles[item].sequence
    def __iter__(self): return (p.sequence for p in self._profiles)
    def __repr__(self): return f"AlignIndex(sequences={len(self._profiles)}, steps={self._steps})"

    @property
    def steps(self) -> int: return self._steps

    def profile(self, i: int) -> MassProfile: return self._profiles[i]

    def align_one(self, other: MassSequence, scoring: AlignScoring = None, align_type: AlignType = AlignType.GLOBAL,
                  filter_: Callable[[Alignment], bool] = None) -> list[Alignment]:
        """
        Aligns one sequence against every indexed sequence.

        The indexed sequence is always the first side of the resulting alignments.

        Args:
            other: The query sequence.
            scoring: Scoring weights.
            align_type: Anchoring.
            filter_: Keep only the alignments this returns True for.

        Returns:
            The alignments, in index order.
        """
        query = MassProfile(other, self._steps)
        alignments = (align_cached(p, query, scoring, align_type) for p in self._profiles)
        return [a for a in alignments if filter_ is None or filter_(a)]

    def align(self, others: Iterable[MassSequence], scoring: AlignScoring = None,
              align_type: AlignType = AlignType.GLOBAL,
              filter_: Callable[[Alignment], bool] = None) -> list[list[Alignment]]:
        """``align_one`` for every query, in query order."""
        return [self.align_one(other, scoring, align_type, filter_) for other in others]

    def multi_align(self, max_merge_distance: Optional[float] = None, scoring: AlignScoring = None,
                    align_type: AlignType = AlignType.GLOBAL, parallel: bool = False) -> list[MultiAlignment]:
        """
        Progressive multiple alignment of all indexed sequences.

        Args:
            max_merge_distance: Stop merging once the closest clusters are further apart than this, merge everything
                into one alignment if None.
            scoring: Scoring weights.
            align_type: Anchoring of every alignment.
            parallel: Compute the initial pairwise distances on the shared thread pool.

        Returns:
            One MultiAlignment per cluster left.

        Raises:
            InsufficientSequencesError: When fewer than two sequences are indexed.
        """
        return progressive_align(self._profiles, max_merge_distance, scoring, align_type, parallel)


# Functions ------------------------------------------------------------------------------------------------------------
def multi_align(sequences: Sequence[MassSequence], max_merge_distance: Optional[float] = None,
                scoring: AlignScoring = None, align_type: AlignType = AlignType.GLOBAL, steps: int = 4,
                parallel: bool = False) -> list[MultiAlignment]:
    """
    Progressive multiple alignment of a set of sequences.

    Examples:
        >>> [a] = multi_align([Peptide.parse(s) for s in ('AGGWHD', 'ANWHN[Deamidated]', 'AHYDH')])
        >>> len(a), a.columns
        (3, 6)
    """
    return AlignIndex(sequences, steps).multi_align(max_merge_distance, scoring, align_type, parallel)
