"""A single step of an alignment path."""
from typing import Iterable

from massalign.engines.mass import MatchType


# Classes --------------------------------------------------------------------------------------------------------------
class Piece:
    """
    One transition of the dynamic programming matrix, and one step of a finished alignment path.

    Attributes:
        score: Total score of the path up to and including this piece.
        local_score: Contribution of this piece alone.
        match_type: Classification of the step.
        step_a: Residues (or columns, for groups) consumed on the first side.
        step_b: Residues (or columns, for groups) consumed on the second side.

    Examples:
        >>> p = Piece(4, 4, MatchType.FULL_IDENTITY, 1, 1)
        >>> Piece.cigar([p, p])
        '2='
    """
    __slots__ = ('score', 'local_score', 'match_type', 'step_a', 'step_b')

    def __init__(self, score: int = 0, local_score: int = 0, match_type: MatchType = MatchType.MISMATCH,
                 step_a: int = 0, step_b: int = 0):
        self.score = int(score)
        self.local_score = int(local_score)
        self.match_type = MatchType(int(match_type))
        self.step_a = int(step_a)
        self.step_b = int(step_b)

    def __eq__(self, other):
        if not isinstance(other, Piece): return NotImplemented
        return (self.score, self.local_score, self.match_type, self.step_a, self.step_b) == (
            other.score, other.local_score, other.match_type, other.step_a, other.step_b)

    def __hash__(self): return hash((self.score, self.local_score, self.match_type, self.step_a, self.step_b))

    def __repr__(self):
        return (f"Piece({self.match_type.name}, {self.step_a}/{self.step_b}, "
                f"score={self.score}, local={self.local_score})")

    @staticmethod
    def op(piece: 'Piece') -> str:
        """The short form operation of a single piece."""
        t, a, b = piece.match_type, piece.step_a, piece.step_b
        # Isobaric sets are always special, also when 1/1
        if t == MatchType.ISOBARIC: return f'{a}i' if a == b else f'{a}:{b}i'
        if (a, b) == (0, 1): return 'I'
        if (a, b) == (1, 0): return 'D'
        if (a, b) == (1, 1):
            if t == MatchType.IDENTITY_MASS_MISMATCH: return 'm'
            if t == MatchType.FULL_IDENTITY: return '='
            if t == MatchType.MISMATCH: return 'X'
        if t == MatchType.ROTATION: return f'{a}r'
        return f'{a}:{b}{t.name[0].lower()}'

    @staticmethod
    def cigar(path: Iterable['Piece']) -> str:
        """
        Renders a path in a CIGAR like short form.

        Runs of the simple operations (``=``, ``X``, ``m``, ``I``, ``D``) are counted, special steps (isobaric
        ``{a}i`` or ``{a}:{b}i`` and rotations ``{a}r``) are written one by one.
        """
        out = []
        last, count = None, 0
        for piece in path:
            op = Piece.op(piece)
            if op == last and op in _SIMPLE:
                count += 1
                continue
            if last is not None: out.append(f'{count}{last}' if last in _SIMPLE else last)
            last, count = op, 1
        if last is not None: out.append(f'{count}{last}' if last in _SIMPLE else last)
        return ''.join(out)


_SIMPLE = frozenset('=XmID')
