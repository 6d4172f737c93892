"""
Progressive multiple alignment.

All sequences are aligned pairwise to seed a distance matrix, then the two closest clusters are merged over and
over. A merge runs the block dynamic programming over the alignment columns of both clusters at once, so block
boundaries are re-derived across whole groups, and afterwards every line of both clusters is rewritten onto the
new common set of columns.
"""
from itertools import groupby
from typing import Iterable, Optional, Sequence, TextIO
import logging
import sys

import numpy as np

from massalign import MassAlignError
from massalign.align.align_type import AlignType
from massalign.align.masses import MassProfile
from massalign.align.matrix import AlignMatrix, pack_side
from massalign.align.pairwise import Score, align_cached
from massalign.align.piece import Piece
from massalign.align.scoring import AlignScoring
from massalign.containers.cluster import Cluster
from massalign.containers.distance import DistanceMatrix
from massalign.engines.mass import MatchType
from massalign.utils.protocols import MassSequence, HasConfidence
from massalign.utils.resources import RESOURCES

logger = logging.getLogger(__name__)


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class InsufficientSequencesError(MassAlignError):
    """Raised when a multiple alignment is requested for fewer than two sequences."""


# Classes --------------------------------------------------------------------------------------------------------------
class MultiPiece:
    """
    One step of a line in a multiple alignment.

    Attributes:
        match_type: Classification of the step.
        ref_step: Number of alignment columns covered.
        seq_step: Number of residues of this line covered, never more than ``ref_step``; zero for a gap.
    """
    __slots__ = ('match_type', 'ref_step', 'seq_step')

    def __init__(self, match_type: MatchType, ref_step: int, seq_step: int):
        if ref_step < seq_step: raise ValueError(f'A piece cannot hold more residues ({seq_step}) than columns ({ref_step})')
        self.match_type = MatchType(int(match_type))
        self.ref_step = int(ref_step)
        self.seq_step = int(seq_step)

    def __eq__(self, other):
        if not isinstance(other, MultiPiece): return NotImplemented
        return (self.match_type, self.ref_step, self.seq_step) == (other.match_type, other.ref_step, other.seq_step)

    def __hash__(self): return hash((self.match_type, self.ref_step, self.seq_step))
    def __repr__(self): return f"MultiPiece({self.match_type.name}, {self.ref_step}/{self.seq_step})"

    @property
    def is_gap(self) -> bool: return self.seq_step == 0


class AlignedLine:
    """
    One sequence as it sits in a (partial) multiple alignment.

    Args:
        original_index: Position of the sequence in the input.
        sequence: The sequence.
        path: The pieces, their ``ref_step`` adding up to the number of alignment columns.
        start: Index of the first residue of ``sequence`` the path covers.
    """
    __slots__ = ('original_index', 'sequence', 'path', 'start')

    def __init__(self, original_index: int, sequence: MassSequence, path: Iterable[MultiPiece], start: int = 0):
        self.original_index = original_index
        self.sequence = sequence
        self.path = list(path)
        self.start = start

    @classmethod
    def single(cls, original_index: int, sequence: MassSequence) -> 'AlignedLine':
        """A sequence on its own: every residue its own identity column."""
        return cls(original_index, sequence, [MultiPiece(MatchType.FULL_IDENTITY, 1, 1) for _ in range(len(sequence))])

    def __len__(self): return len(self.path)
    def __iter__(self): return iter(self.path)

    def __repr__(self):
        return f"AlignedLine({self.original_index}, {self.row()})"

    @property
    def ref_length(self) -> int:
        """Number of alignment columns."""
        return sum(p.ref_step for p in self.path)

    @property
    def seq_length(self) -> int:
        """Number of residues covered."""
        return sum(p.seq_step for p in self.path)

    def blocks(self) -> Iterable[tuple[int, int, MultiPiece]]:
        """Yields ``(column, residue, piece)`` for every piece, with the column and residue where it starts."""
        column, residue = 0, self.start
        for piece in self.path:
            yield column, residue, piece
            column += piece.ref_step
            residue += piece.seq_step

    def cuts(self) -> np.ndarray:
        """Residue index at every piece boundary column, ``-1`` for columns inside a piece."""
        cuts = np.full(self.ref_length + 1, -1, dtype=np.int64)
        for column, residue, piece in self.blocks(): cuts[column] = residue
        cuts[self.ref_length] = self.start + self.seq_length
        return cuts

    def gaps(self) -> np.ndarray:
        """Number of gap columns before every column."""
        gaps = np.zeros(self.ref_length + 1, dtype=np.int64)
        flags = np.array([p.is_gap for p in self.path for _ in range(p.ref_step)], dtype=np.int64)
        np.cumsum(flags, out=gaps[1:])
        return gaps

    def owners(self) -> list[int]:
        """Index of the piece covering each column."""
        return [index for index, piece in enumerate(self.path) for _ in range(piece.ref_step)]

    def residues_between(self, first: int, last: int) -> Sequence:
        """Residues of the pieces starting in columns ``[first, last)``."""
        out = []
        for column, residue, piece in self.blocks():
            if first <= column < last: out.extend(self.sequence[residue:residue + piece.seq_step])
        return out

    def row(self) -> str:
        """
        Text rendering: residues as one letter codes, gaps as ``-`` and the columns a block spans beyond its own
        residues as ``·``.
        """
        out = []
        for _, residue, piece in self.blocks():
            if piece.is_gap: out.append('-' * piece.ref_step)
            else:
                out.append(''.join(r.symbol for r in self.sequence[residue:residue + piece.seq_step]))
                out.append('·' * (piece.ref_step - piece.seq_step))
        return ''.join(out)


class MultiAlignment:
    """
    A multiple alignment: lines of equal length in alignment columns.

    Attributes:
        lines: The aligned lines, ordered by their position in the input.
        score: Accumulated score of all merges.
        maximal_step: Maximal block length used.
        align_type: Anchoring used for every merge.

    Examples:
        >>> [a] = multi_align([Peptide.parse(s) for s in ('AGGWHD', 'ANWHN[Deamidated]', 'AHYDH')])
        >>> a.rows()
        ['AGGWHD', 'AN·WHN', 'AHY·DH']
    """
    __slots__ = ('lines', 'score', 'maximal_step', 'align_type')

    def __init__(self, lines: Iterable[AlignedLine], score: Score, maximal_step: int, align_type: AlignType):
        self.lines = sorted(lines, key=lambda line: line.original_index)
        self.score = score
        self.maximal_step = maximal_step
        self.align_type = align_type

    def __len__(self): return len(self.lines)
    def __iter__(self): return iter(self.lines)
    def __getitem__(self, item): return self.lines[item]
    def __str__(self): return '\n'.join([self.header()] + self.rows())
    def __repr__(self): return f"MultiAlignment(lines={len(self.lines)}, columns={self.columns})"

    @property
    def columns(self) -> int:
        """Number of alignment columns."""
        return max((line.ref_length for line in self.lines), default=0)

    def header(self) -> str:
        return (f"Multi score: {self.score.normalised:.4f} ({self.score.absolute}/{self.score.max}) "
                f"max_step: {self.maximal_step}")

    def rows(self) -> list[str]:
        """One text row per line, see ``AlignedLine.row``."""
        return [line.row() for line in self.lines]

    def debug_display(self, sink: TextIO = None):
        """Writes the header and all rows to ``sink`` (stdout by default)."""
        sink = sys.stdout if sink is None else sink
        for text in [self.header()] + self.rows(): sink.write(text + '\n')

    def variance(self) -> list[dict[tuple[str, int], tuple[int, Optional[float]]]]:
        """
        Tallies, per alignment column, the blocks that start in that column.

        Returns:
            One mapping per column from ``(block, ref_step)``, the block being its one letter codes, to
            ``(count, mean confidence)``. The confidence is None unless any contributing sequence carries
            per-residue confidence.
        """
        tallies = [{} for _ in range(self.columns)]
        for line in self.lines:
            confidence = line.sequence.confidence if isinstance(line.sequence, HasConfidence) else None
            for column, residue, piece in line.blocks():
                if piece.is_gap: continue
                key = (''.join(r.symbol for r in line.sequence[residue:residue + piece.seq_step]), piece.ref_step)
                count, total, weighted = tallies[column].get(key, (0, 0.0, 0))
                if confidence is not None:
                    total += float(np.mean(confidence[residue:residue + piece.seq_step]))
                    weighted += 1
                tallies[column][key] = (count + 1, total, weighted)
        return [{key: (count, total / weighted if weighted else None) for key, (count, total, weighted) in column.items()}
                for column in tallies]


# Functions ------------------------------------------------------------------------------------------------------------
def merge_steps(path: Sequence[Piece], start_a: int, start_b: int, columns_a: int,
                columns_b: int) -> list[tuple[MatchType, int, int]]:
    """
    The full list of steps over both groups.

    The parts a traceback left unaligned become gap steps, leading columns of the first group before those of
    the second, so every column of both groups is covered.
    """
    steps = [(MatchType.GAP, 1, 0)] * start_a + [(MatchType.GAP, 0, 1)] * start_b
    steps.extend((p.match_type, p.step_a, p.step_b) for p in path)
    end_a = start_a + sum(p.step_a for p in path)
    end_b = start_b + sum(p.step_b for p in path)
    steps.extend([(MatchType.GAP, 1, 0)] * (columns_a - end_a) + [(MatchType.GAP, 0, 1)] * (columns_b - end_b))
    return steps


def reconcile(line: AlignedLine, steps: Sequence[tuple[MatchType, int, int]], is_a: bool) -> AlignedLine:
    """
    Rewrites a line onto the columns of a merge.

    Every step is as wide as its longer side. Where this line's side of the step is narrower the extra columns go
    to the piece covering the last column the line contributed, to the piece the step boundary falls in, or else
    to a new gap. Identity pieces inside a non identity match take the match type of that step, and a residue
    piece grown by a block takes the type of that block unless it already is a mass based block.

    Args:
        line: The line before the merge.
        steps: All steps of the merge, see ``merge_steps``.
        is_a: Whether the line belongs to the first group.
    """
    owner = line.owners()
    keys, retyped, widened = [], {}, {}
    position, new_gaps = 0, 0
    for kind, step_a, step_b in steps:
        own = step_a if is_a else step_b
        width = max(step_a, step_b)
        covered = owner[position:position + own]
        keys.extend(covered)
        if step_a and step_b and kind != MatchType.FULL_IDENTITY:
            for key in covered: retyped.setdefault(key, kind)
        if extra := width - own:
            if own:
                key = owner[position + own - 1]
                widened.setdefault(key, kind)
            elif 0 < position < len(owner) and owner[position - 1] == owner[position]: key = owner[position]
            else:
                new_gaps += 1
                key = -new_gaps
            keys.extend([key] * extra)
        position += own

    path = []
    for key, run in groupby(keys):
        width = len(list(run))
        if key < 0: piece = MultiPiece(MatchType.GAP, width, 0)
        else:
            old = line.path[key]
            if old.is_gap or old.match_type in (MatchType.ISOBARIC, MatchType.ROTATION): kind = old.match_type
            elif key in widened: kind = widened[key]
            elif old.match_type == MatchType.FULL_IDENTITY: kind = retyped.get(key, old.match_type)
            else: kind = old.match_type
            piece = MultiPiece(kind, width, old.seq_step)
        if piece.is_gap and path and path[-1].is_gap:
            path[-1] = MultiPiece(MatchType.GAP, path[-1].ref_step + width, 0)
        else: path.append(piece)
    return AlignedLine(line.original_index, line.sequence, path, line.start)


def pad(lines: Sequence[AlignedLine]) -> list[AlignedLine]:
    """Grows (or appends) the trailing gap of every line so all lines span the same number of columns."""
    columns = max((line.ref_length for line in lines), default=0)
    for line in lines:
        if missing := columns - line.ref_length:
            if line.path and line.path[-1].is_gap:
                line.path[-1] = MultiPiece(MatchType.GAP, line.path[-1].ref_step + missing, 0)
            else: line.path.append(MultiPiece(MatchType.GAP, missing, 0))
    return list(lines)


def merge_clusters(a: Cluster, b: Cluster, profiles: Sequence[MassProfile], scoring: AlignScoring,
                   align_type: AlignType) -> Cluster:
    """
    Aligns two clusters to each other and merges them.

    Every matrix cell takes the best step over all pairs of one line from each cluster. The merge score is the
    path score against half the best self scores of the aligned regions of both clusters.
    """
    steps = profiles[0].steps
    interner = {}
    side_a = pack_side([profiles[line.original_index] for line in a], np.stack([line.cuts() for line in a]),
                       interner, scoring.tolerance, np.stack([line.gaps() for line in a]))
    side_b = pack_side([profiles[line.original_index] for line in b], np.stack([line.cuts() for line in b]),
                       interner, gaps=np.stack([line.gaps() for line in b]))
    columns_a, columns_b = a.columns, b.columns
    matrix = AlignMatrix(columns_a, columns_b)
    high = matrix.fill(side_a, side_b, scoring, align_type, steps)
    start_a, start_b, path = matrix.trace_path(align_type, high)

    end_a, end_b = start_a + sum(p.step_a for p in path), start_b + sum(p.step_b for p in path)
    best_a = max(scoring.self_score(line.residues_between(start_a, end_a)) for line in a)
    best_b = max(scoring.self_score(line.residues_between(start_b, end_b)) for line in b)
    score = Score.build(path[-1].score if path else 0, (best_a + best_b) // 2)

    steps_all = merge_steps(path, start_a, start_b, columns_a, columns_b)
    lines = pad([reconcile(line, steps_all, True) for line in a] + [reconcile(line, steps_all, False) for line in b])
    total = score if a.score is None else a.score + score
    total = total if b.score is None else total + b.score
    return Cluster(lines, id_=a.id, score=total)


def distance_matrix(profiles: Sequence[MassProfile], scoring: AlignScoring, align_type: AlignType,
                    parallel: bool = False) -> DistanceMatrix:
    """
    All pairwise distances (one minus the normalised score).

    Pairs are independent, so they may be aligned on the shared thread pool; results are placed by index and
    the outcome does not depend on scheduling.
    """
    pairs = [(i, j) for i in range(len(profiles)) for j in range(i + 1, len(profiles))]
    def distance(pair):
        return align_cached(profiles[pair[0]], profiles[pair[1]], scoring, align_type).distance()

    values = list(RESOURCES.pool.map(distance, pairs)) if parallel else [distance(pair) for pair in pairs]
    return DistanceMatrix(np.array(values, dtype=np.float64))


def progressive_align(profiles: Sequence[MassProfile], max_merge_distance: Optional[float] = None,
                      scoring: AlignScoring = None, align_type: AlignType = AlignType.GLOBAL,
                      parallel: bool = False) -> list[MultiAlignment]:
    """
    Builds multiple alignments by repeatedly merging the two closest clusters.

    Args:
        profiles: Profiles of the sequences, all with the same maximal block length.
        max_merge_distance: Stop merging once the closest clusters are further apart than this.
        scoring: Scoring weights.
        align_type: Anchoring of every alignment.
        parallel: Compute the initial pairwise distances on the shared thread pool.

    Returns:
        One MultiAlignment per remaining cluster, in order of the lowest input index they hold.

    Raises:
        InsufficientSequencesError: For fewer than two sequences.
    """
    if len(profiles) < 2:
        raise InsufficientSequencesError(f'A multiple alignment needs at least two sequences, got {len(profiles)}')
    scoring = scoring or AlignScoring()
    align_type = AlignType.parse(align_type)
    steps = profiles[0].steps
    if any(p.steps != steps for p in profiles): raise ValueError('All profiles must use the same maximal block length')

    distances = distance_matrix(profiles, scoring, align_type, parallel)
    if logger.isEnabledFor(logging.DEBUG): logger.debug('Initial distances:\n%s', distances.to_csv())
    clusters = [Cluster([AlignedLine.single(i, p.sequence)], id_=i) for i, p in enumerate(profiles)]

    while len(clusters) > 1:
        i, j, distance = distances.min()
        if max_merge_distance is not None and distance > max_merge_distance:
            logger.info('Stopped merging at distance %.4f with %d clusters left', distance, len(clusters))
            break
        second = clusters.pop(j)
        first = clusters.pop(i)
        clusters.insert(i, merge_clusters(first, second, profiles, scoring, align_type))
        distances.merge(i, j)
        logger.debug('Merged clusters %s and %s at distance %.4f, %d left', first.id, second.id, distance,
                     len(clusters))

    return [MultiAlignment(c.lines, c.score or Score(), steps, align_type) for c in clusters]
