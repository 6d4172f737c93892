"""Pairwise mass based alignment and its result type."""
from dataclasses import dataclass
from typing import Sequence
from warnings import warn

from massalign import EmptySequenceWarning
from massalign.align.align_type import AlignType
from massalign.align.masses import MassProfile
from massalign.align.matrix import AlignMatrix, pack_side, sequence_cuts
from massalign.align.piece import Piece
from massalign.align.scoring import AlignScoring
from massalign.engines.mass import MatchType
from massalign.utils.protocols import MassSequence


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Score:
    """
    Summary score of an alignment.

    Attributes:
        normalised: ``absolute / max`` capped at 1, 0 when ``max`` is 0.
        absolute: The raw path score.
        max: Half the sum of the self scores of both aligned regions.
    """
    normalised: float = 0.0
    absolute: int = 0
    max: int = 0

    @classmethod
    def build(cls, absolute: int, maximum: int) -> 'Score':
        return cls(0.0 if maximum == 0 else min(1.0, absolute / maximum), int(absolute), int(maximum))

    def __add__(self, other: 'Score') -> 'Score':
        return Score.build(self.absolute + other.absolute, self.max + other.max)


@dataclass(frozen=True, slots=True)
class Stats:
    """
    Step counts of an alignment.

    Attributes:
        identical: Positions aligned to the identical amino acid of identical mass.
        mass_similar: Positions in any mass equivalent step (identity, isobaric or rotation).
        gaps: Positions in gaps.
        length: Total positions, a block counts as its longer side.
    """
    identical: int = 0
    mass_similar: int = 0
    gaps: int = 0
    length: int = 0

    def identity(self) -> float: return self.identical / self.length if self.length else 0.0
    def similarity(self) -> float: return self.mass_similar / self.length if self.length else 0.0
    def gaps_fraction(self) -> float: return self.gaps / self.length if self.length else 0.0


class Alignment:
    """
    A pairwise alignment between two sequences.

    Attributes:
        seq_a: First sequence.
        seq_b: Second sequence.
        path: The pieces of the alignment, in order.
        start_a: First aligned residue of ``seq_a``.
        start_b: First aligned residue of ``seq_b``.
        score: The alignment score.
        align_type: Anchoring used.
        maximal_step: Maximal block length used.

    Examples:
        >>> aln = align(Peptide.parse('ANGARS'), Peptide.parse('AGGQRS'))
        >>> aln.short()
        '1=1:2i2:1i2='
        >>> print(aln)
        AN·GARS
        AGGQ·RS
    """
    __slots__ = ('seq_a', 'seq_b', 'path', 'start_a', 'start_b', 'score', 'align_type', 'maximal_step')

    def __init__(self, seq_a: MassSequence, seq_b: MassSequence, path: Sequence[Piece], start_a: int, start_b: int,
                 score: Score, align_type: AlignType, maximal_step: int):
        self.seq_a = seq_a
        self.seq_b = seq_b
        self.path = list(path)
        self.start_a = start_a
        self.start_b = start_b
        self.score = score
        self.align_type = align_type
        self.maximal_step = maximal_step

    def __len__(self): return len(self.path)
    def __iter__(self): return iter(self.path)
    def __str__(self): return '\n'.join(self.rows())

    def __repr__(self):
        return (f"Alignment({self.short()}, score={self.score.absolute}/{self.score.max}, "
                f"start=({self.start_a}, {self.start_b}))")

    @property
    def len_a(self) -> int:
        """Number of residues of ``seq_a`` covered by the path."""
        return sum(p.step_a for p in self.path)

    @property
    def len_b(self) -> int: return sum(p.step_b for p in self.path)

    def short(self) -> str:
        """The path in CIGAR like notation, see ``Piece.cigar``."""
        return Piece.cigar(self.path)

    def distance(self) -> float:
        """Distance used for clustering: one minus the normalised score."""
        return 1.0 - self.score.normalised

    def stats(self) -> Stats:
        identical = similar = gaps = length = 0
        for p in self.path:
            width = max(p.step_a, p.step_b)
            length += width
            if p.match_type == MatchType.GAP: gaps += width
            elif p.match_type == MatchType.FULL_IDENTITY:
                identical += width
                similar += width
            elif p.match_type in (MatchType.ISOBARIC, MatchType.ROTATION): similar += width
        return Stats(identical, similar, gaps, length)

    def aligned_a(self) -> Sequence: return self.seq_a[self.start_a:self.start_a + self.len_a]
    def aligned_b(self) -> Sequence: return self.seq_b[self.start_b:self.start_b + self.len_b]

    def mass_difference(self) -> float:
        """Mass of the aligned part of ``seq_a`` minus that of ``seq_b`` (first interpretation of ambiguous residues)."""
        mass = lambda residues: sum(r.masses[0] for r in residues if r.masses)
        return mass(self.aligned_a()) - mass(self.aligned_b())

    def ppm(self) -> float:
        """The mass difference relative to the aligned part of ``seq_b``, in ppm."""
        reference = sum(r.masses[0] for r in self.aligned_b() if r.masses)
        return abs(self.mass_difference()) / reference * 1e6 if reference else float('inf')

    def rows(self) -> tuple[str, str]:
        """
        Two text rows, one per sequence.

        Gaps are ``-``, the shorter side of a block is padded with ``·`` to the width of the longer side.
        """
        row_a, row_b = [], []
        a, b = self.start_a, self.start_b
        for p in self.path:
            width = max(p.step_a, p.step_b)
            for row, seq, start, step in ((row_a, self.seq_a, a, p.step_a), (row_b, self.seq_b, b, p.step_b)):
                if step == 0: row.append('-' * width)
                else: row.append(''.join(r.symbol for r in seq[start:start + step]) + '·' * (width - step))
            a, b = a + p.step_a, b + p.step_b
        return ''.join(row_a), ''.join(row_b)


# Functions ------------------------------------------------------------------------------------------------------------
def determine_score(residues_a: Sequence, residues_b: Sequence, path: Sequence[Piece], scoring: AlignScoring) -> Score:
    """Scores a finished path against the best either aligned region could have scored on its own."""
    maximum = (scoring.self_score(residues_a) + scoring.self_score(residues_b)) // 2
    return Score.build(path[-1].score if path else 0, maximum)


def align(seq_a: MassSequence, seq_b: MassSequence, scoring: AlignScoring = None,
          align_type: AlignType = AlignType.GLOBAL, steps: int = 4) -> Alignment:
    """
    Aligns two sequences, allowing blocks of up to ``steps`` residues on either side to match on mass.

    Args:
        seq_a: First sequence.
        seq_b: Second sequence.
        scoring: Scoring weights, defaults to ``AlignScoring()``.
        align_type: Anchoring of both ends, ``AlignType.GLOBAL`` by default.
        steps: Maximal block length.

    Returns:
        The optimal Alignment.

    Examples:
        >>> align(Peptide.parse('ANGARS'), Peptide.parse('AGGQRS'), steps=1).short()
        '1=1X1=1X2='
    """
    return align_cached(MassProfile(seq_a, steps), MassProfile(seq_b, steps), scoring, align_type)


def align_cached(profile_a: MassProfile, profile_b: MassProfile, scoring: AlignScoring = None,
                 align_type: AlignType = AlignType.GLOBAL) -> Alignment:
    """
    Aligns two sequences whose block masses were computed before.

    Both profiles must have been built with the same maximal block length.
    """
    if profile_a.steps != profile_b.steps:
        raise ValueError(f'Profiles use different block lengths ({profile_a.steps} and {profile_b.steps})')
    scoring = scoring or AlignScoring()
    align_type = AlignType.parse(align_type)
    if len(profile_a) == 0 or len(profile_b) == 0:
        warn('Aligning an empty sequence', EmptySequenceWarning)
    steps = profile_a.steps
    interner = {}
    side_a = pack_side([profile_a], sequence_cuts(len(profile_a)), interner, scoring.tolerance)
    side_b = pack_side([profile_b], sequence_cuts(len(profile_b)), interner)
    matrix = AlignMatrix(len(profile_a), len(profile_b))
    high = matrix.fill(side_a, side_b, scoring, align_type, steps)
    start_a, start_b, path = matrix.trace_path(align_type, high)
    seq_a, seq_b = profile_a.sequence, profile_b.sequence
    score = determine_score(seq_a[start_a:start_a + sum(p.step_a for p in path)],
                            seq_b[start_b:start_b + sum(p.step_b for p in path)], path, scoring)
    return Alignment(seq_a, seq_b, path, start_a, start_b, score, align_type, steps)
