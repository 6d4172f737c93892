"""Scoring configuration and the residue, block and gap scoring functions."""
from dataclasses import dataclass
from typing import Union, Iterable, Optional, Sequence

import numpy as np

from massalign.align.masses import block_masses, encode
from massalign.align.piece import Piece
from massalign.core.residue import AMINO_ACIDS
from massalign.core.tolerance import Tolerance
from massalign.engines.mass import MatchType, PairMode, Param, _score_pair, _score_block, _score_gap


# Constants ------------------------------------------------------------------------------------------------------------
_STANDARD = 'ACDEFGHIKLMNPQRSTVWY'
# Interpretations of the extended symbols in terms of the standard amino acids
_MEMBERS = {'B': 'ND', 'J': 'IL', 'O': 'K', 'U': 'C', 'X': _STANDARD, 'Z': 'QE'}


# Classes --------------------------------------------------------------------------------------------------------------
class ScoreMatrix:
    """
    A substitution matrix indexed by residue code (see ``AMINO_ACIDS``).

    Attributes:
        _data (np.ndarray): The raw matrix data.

    Examples:
        >>> m = ScoreMatrix.blosum62()
        >>> int(m['W', 'W'])
        11
    """
    _DTYPE = np.int64
    __slots__ = ('_data',)

    def __init__(self, data: Union[np.ndarray, Iterable]):
        self._data = np.ascontiguousarray(data, dtype=self._DTYPE)
        if self._data.shape != (len(AMINO_ACIDS), len(AMINO_ACIDS)):
            raise ValueError(f'Expected a {len(AMINO_ACIDS)}x{len(AMINO_ACIDS)} matrix, got {self._data.shape}')
        self._data.flags.writeable = False

    def __getitem__(self, item):
        if isinstance(item, tuple) and all(isinstance(i, str) for i in item):
            item = tuple(AMINO_ACIDS.index(i) for i in item)
        return self._data[item]

    def __array__(self, dtype=None, copy=None): return self._data.astype(dtype, copy=False) if dtype else self._data
    def __repr__(self): return f"ScoreMatrix{self._data.shape}"
    @property
    def shape(self): return self._data.shape
    @property
    def data(self) -> np.ndarray: return self._data

    @classmethod
    def extend(cls, standard: np.ndarray) -> 'ScoreMatrix':
        """
        Builds a full matrix from one over the 20 standard amino acids.

        The extended symbols score as the rounded down average of their interpretations.
        """
        standard = np.asarray(standard, dtype=np.float64).reshape(20, 20)
        members = [[_STANDARD.index(m) for m in _MEMBERS.get(aa, aa)] for aa in AMINO_ACIDS]
        data = np.empty((len(AMINO_ACIDS), len(AMINO_ACIDS)), dtype=cls._DTYPE)
        for i, rows in enumerate(members):
            for j, cols in enumerate(members):
                data[i, j] = np.floor(standard[np.ix_(rows, cols)].mean())
        return cls(data)

    @classmethod
    def blosum62(cls) -> 'ScoreMatrix':
        """Returns the BLOSUM62 matrix."""
        data = [
            4, 0, -2, -1, -2, 0, -2, -1, -1, -1, -1, -2, -1, -1, -1, 1, 0, 0, -3, -2,
            0, 9, -3, -4, -2, -3, -3, -1, -3, -1, -1, -3, -3, -3, -3, -1, -1, -1, -2, -2,
            -2, -3, 6, 2, -3, -1, -1, -3, -1, -4, -3, 1, -1, 0, -2, 0, -1, -3, -4, -3,
            -1, -4, 2, 5, -3, -2, 0, -3, 1, -3, -2, 0, -1, 2, 0, 0, -1, -2, -3, -2,
            -2, -2, -3, -3, 6, -3, -1, 0, -3, 0, 0, -3, -4, -3, -3, -2, -2, -1, 1, 3,
            0, -3, -1, -2, -3, 6, -2, -4, -2, -4, -3, 0, -2, -2, -2, 0, -2, -3, -2, -3,
            -2, -3, -1, 0, -1, -2, 8, -3, -1, -3, -2, 1, -2, 0, 0, -1, -2, -3, -2, 2,
            -1, -1, -3, -3, 0, -4, -3, 4, -3, 2, 1, -3, -3, -3, -3, -2, -1, 3, -3, -1,
            -1, -3, -1, 1, -3, -2, -1, -3, 5, -2, -1, 0, -1, 1, 2, 0, -1, -2, -3, -2,
            -1, -1, -4, -3, 0, -4, -3, 2, -2, 4, 2, -3, -3, -2, -2, -2, -1, 1, -2, -1,
            -1, -1, -3, -2, 0, -3, -2, 1, -1, 2, 5, -2, -2, 0, -1, -1, -1, 1, -1, -1,
            -2, -3, 1, 0, -3, 0, 1, -3, 0, -3, -2, 6, -2, 0, 0, 1, 0, -3, -4, -2,
            -1, -3, -1, -1, -4, -2, -2, -3, -1, -3, -2, -2, 7, -1, -2, -1, -1, -2, -4, -3,
            -1, -3, 0, 2, -3, -2, 0, -3, 1, -2, 0, 0, -1, 5, 1, 0, -1, -2, -2, -1,
            -1, -3, -2, 0, -3, -2, 0, -3, 2, -2, -1, 0, -2, 1, 5, -1, -1, -3, -3, -2,
            1, -1, 0, 0, -2, 0, -1, -2, 0, -2, -1, 1, -1, 0, -1, 4, 1, -2, -3, -2,
            0, -1, -1, -1, -2, -2, -2, -1, -1, -1, -1, 0, -1, -1, -1, 1, 5, 0, -2, -2,
            0, -1, -3, -2, -1, -3, -3, 3, -2, 1, 1, -3, -2, -2, -3, -2, 0, 4, -3, -1,
            -3, -2, -4, -3, 1, -2, -2, -3, -3, -2, -1, -4, -4, -2, -3, -3, -2, -3, 11, 2,
            -2, -2, -3, -2, 3, -3, 2, -1, -2, -1, -1, -2, -3, -1, -2, -2, -2, -1, 2, 7
        ]
        return cls.extend(np.array(data))

    @classmethod
    def build(cls, match: int = 1, mismatch: int = -1) -> 'ScoreMatrix':
        """Builds a simple match/mismatch matrix."""
        m = np.full((len(AMINO_ACIDS), len(AMINO_ACIDS)), mismatch, dtype=cls._DTYPE)
        np.fill_diagonal(m, match)
        return cls(m)

    @classmethod
    def identity(cls) -> 'ScoreMatrix':
        """Scores only exact amino acid identity."""
        return cls.build(match=9, mismatch=-5)


BLOSUM62 = ScoreMatrix.blosum62()


@dataclass(frozen=True, slots=True)
class AlignScoring:
    """
    Weights used to score an alignment.

    Attributes:
        matrix: Substitution matrix for single residue steps.
        mismatch: Added to the substitution score of a mismatch.
        mass_mismatch: Added to the substitution score of an identical amino acid with a different mass, see ``pair``.
        mass_base: Base score of any mass based match.
        rotated: Score per residue of a rotation.
        isobaric: Score per residue (averaged over both sides) of an isobaric block.
        gap_start: Additional score for opening a gap.
        gap_extend: Score of every gap position.
        tolerance: Mass tolerance for equivalence.
        pair: How identical amino acids of different mass are treated.

    Examples:
        >>> AlignScoring(pair='database_to_peptidoform').pair
        <PairMode.DATABASE_TO_PEPTIDOFORM: 1>
    """
    matrix: ScoreMatrix = BLOSUM62
    mismatch: int = 0
    mass_mismatch: int = 0
    mass_base: int = 1
    rotated: int = 3
    isobaric: int = 2
    gap_start: int = -4
    gap_extend: int = -1
    tolerance: Tolerance = Tolerance(10.0)
    pair: Union[PairMode, str, int] = PairMode.SAME

    def __post_init__(self):
        if isinstance(self.pair, PairMode): return
        if isinstance(self.pair, str):
            try: val = PairMode[self.pair.upper()]
            except KeyError: raise ValueError(f"Invalid pair mode: {self.pair}")
        else:
            try: val = PairMode(self.pair)
            except ValueError: raise ValueError(f"Invalid pair mode: {self.pair}")
        object.__setattr__(self, 'pair', val)

    @property
    def params(self) -> np.ndarray:
        """The integer weights laid out for the kernels."""
        params = np.zeros(len(Param), dtype=np.int64)
        params[Param.MISMATCH] = self.mismatch
        params[Param.MASS_MISMATCH] = self.mass_mismatch
        params[Param.MASS_BASE] = self.mass_base
        params[Param.ROTATED] = self.rotated
        params[Param.ISOBARIC] = self.isobaric
        params[Param.GAP_START] = self.gap_start
        params[Param.GAP_EXTEND] = self.gap_extend
        params[Param.PAIR] = self.pair
        return params

    def self_score(self, residues: Iterable) -> int:
        """Sum of the diagonal of the substitution matrix over ``residues``, the best any alignment can do."""
        data = self.matrix.data
        return int(sum(data[r.code, r.code] for r in residues))


# Functions ------------------------------------------------------------------------------------------------------------
def score_pair(a, b, scoring: AlignScoring = None, score: int = 0) -> Piece:
    """
    Scores a single residue against another.

    Identical amino acids with matching masses are a full identity. Identical amino acids whose masses disagree
    are a mass mismatch when the modification sits on the trusted side (see ``PairMode``), else a mismatch.
    Different amino acids of equal mass are isobaric.

    Args:
        a: Residue on the first sequence.
        b: Residue on the second sequence.
        scoring: Scoring weights.
        score: Running score the piece builds on.

    Returns:
        A Piece with steps (1, 1).
    """
    scoring = scoring or AlignScoring()
    tol = scoring.tolerance
    fields = _score_pair(a.code, a.is_modified, np.asarray(a.masses, dtype=np.float64),
                         b.code, b.is_modified, np.asarray(b.masses, dtype=np.float64),
                         scoring.matrix.data, scoring.params, int(tol.kind), float(tol.value), score, 1, 1)
    return Piece(*fields)


def score_block(a: Sequence, b: Sequence, scoring: AlignScoring = None, score: int = 0) -> Optional[Piece]:
    """
    Scores a block of residues against another block.

    Args:
        a: Residues on the first sequence.
        b: Residues on the second sequence.
        scoring: Scoring weights.
        score: Running score the piece builds on.

    Returns:
        A rotation or isobaric Piece stepping over both blocks, or None if the blocks differ in mass.
    """
    scoring = scoring or AlignScoring()
    tol = scoring.tolerance
    interner = {}
    ids_a, ids_b = encode(a, interner)[1], encode(b, interner)[1]
    found, *fields = _score_block(ids_a, ids_b, block_masses(a), block_masses(b), scoring.params, int(tol.kind),
                                  float(tol.value), score, len(a), len(b))
    return Piece(*fields) if found else None


def score_gap(previous: Piece, gap_a: bool, scoring: AlignScoring = None) -> Piece:
    """
    Scores a gap step following ``previous``.

    Args:
        previous: The piece stored in the cell the gap starts from.
        gap_a: True to step over a residue of the first sequence, False for the second.
        scoring: Scoring weights.
    """
    scoring = scoring or AlignScoring()
    return Piece(*_score_gap(previous.score, previous.step_a, previous.step_b, gap_a, scoring.gap_start,
                             scoring.gap_extend))
