"""
Mass based alignment of peptides.

Residues are aligned in blocks: a run of residues on one side may match a run of a different length on the
other side whenever their total masses agree within a tolerance. On top of the pairwise dynamic programming
sits a progressive aligner that merges groups of sequences into a multiple alignment.

Examples:
    >>> from massalign import Peptide, align, multi_align
    >>> align(Peptide.parse('ANGARS'), Peptide.parse('AGGQRS')).short()
    '1=1:2i2:1i2='
"""


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class MassAlignError(Exception):
    """Base class for all errors raised by massalign."""


class MassAlignWarning(Warning): pass
class EmptySequenceWarning(MassAlignWarning): pass


# Exports --------------------------------------------------------------------------------------------------------------
from massalign.core.tolerance import Tolerance, ToleranceKind
from massalign.core.residue import Residue, Modification, ResidueError
from massalign.core.peptide import Peptide
from massalign.align.align_type import AlignType, Side
from massalign.align.scoring import AlignScoring, MatchType, PairMode, ScoreMatrix
from massalign.align.piece import Piece
from massalign.align.pairwise import Alignment, Score, Stats, align
from massalign.align.multi import MultiAlignment, InsufficientSequencesError
from massalign.align.index import AlignIndex, multi_align
