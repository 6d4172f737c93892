import numpy as np
import pytest
from massalign import Peptide, Residue, Tolerance
from massalign.align.masses import BlockMassCache, MassProfile, block_masses, encode
from massalign.align.piece import Piece
from massalign.align.scoring import (AlignScoring, ScoreMatrix, BLOSUM62, MatchType, PairMode, score_pair,
                                     score_block, score_gap)


class TestBlockMassCache:
    def test_block_masses_are_sums(self):
        cache = BlockMassCache(Peptide('GGN'), steps=2)
        np.testing.assert_allclose(cache.masses(1, 2), [114.042928])
        np.testing.assert_allclose(cache.masses(2, 1), [114.042927])

    def test_ambiguous_residues_multiply(self):
        cache = BlockMassCache(Peptide('BK'), steps=2)
        assert len(cache.masses(1, 2)) == 2
        lo, hi = cache.bounds(1, 2)
        assert lo < hi

    def test_unknown_mass_never_overlaps(self):
        cache = BlockMassCache(Peptide('AX'), steps=2)
        assert len(cache.masses(1, 2)) == 0
        lo, hi = cache.expanded(Tolerance.ppm(10))
        assert lo[cache.index(1, 2)] > hi[cache.index(1, 2)]

    def test_expanded_is_cached(self):
        cache = BlockMassCache(Peptide('PEPTIDE'), steps=3)
        assert cache.expanded(Tolerance.ppm(10)) is cache.expanded(Tolerance.ppm(10))

    def test_outside_triangle(self):
        cache = BlockMassCache(Peptide('PEPTIDE'), steps=3)
        with pytest.raises(AssertionError):
            cache.index(1, 3)
        with pytest.raises(AssertionError):
            cache.index(5, 4)

    def test_sizes_per_cell(self):
        cache = BlockMassCache(Peptide('BKG'), steps=2)
        # B is N or D, so every block holding it has two masses
        assert [cache.sizes[0, 0], cache.sizes[1, 1], cache.sizes[2, 1]] == [2, 2, 1]
        assert cache.starts[-1] == len(cache.values)

    def test_empty(self):
        cache = BlockMassCache(Peptide(''), steps=4)
        assert len(cache) == 0
        assert len(cache.values) == 0

    def test_block_masses_function(self):
        np.testing.assert_allclose(block_masses(Peptide('GG')), [114.042928])


class TestEncode:
    def test_shared_interner(self):
        interner = {}
        _, ids_a, _ = encode(Peptide.parse('NN[Deamidated]'), interner)
        _, ids_b, _ = encode(Peptide.parse('N[Deamidated]D'), interner)
        assert ids_a[1] == ids_b[0]
        assert ids_a[0] != ids_a[1]
        assert len(interner) == 3

    def test_profile(self):
        profile = MassProfile(Peptide.parse('AM[Oxidation]'), steps=2)
        np.testing.assert_array_equal(profile.codes, [0, 10])
        np.testing.assert_array_equal(profile.modified, [False, True])
        assert profile.steps == 2


class TestScoreMatrix:
    def test_blosum62_symmetric(self):
        np.testing.assert_array_equal(BLOSUM62.data, BLOSUM62.data.T)

    def test_blosum62_values(self):
        assert BLOSUM62['W', 'W'] == 11
        assert BLOSUM62['K', 'R'] == 2
        assert BLOSUM62['N', 'G'] == 0

    def test_extended_symbols(self):
        # Floor of the mean over N and D
        assert BLOSUM62['B', 'B'] == np.floor((6 + 1 + 1 + 6) / 4)
        assert BLOSUM62['O', 'K'] == BLOSUM62['K', 'K']

    def test_read_only(self):
        with pytest.raises(ValueError):
            BLOSUM62.data[0, 0] = 1

    def test_build(self):
        m = ScoreMatrix.build(2, -3)
        assert m['A', 'A'] == 2
        assert m['A', 'C'] == -3

    def test_invalid_shape(self):
        with pytest.raises(ValueError, match="Expected"):
            ScoreMatrix(np.zeros((20, 20)))


class TestAlignScoring:
    def test_defaults(self):
        scoring = AlignScoring()
        assert scoring.gap_start == -4
        assert scoring.tolerance == Tolerance.ppm(10)
        assert scoring.pair == PairMode.SAME

    def test_pair_from_name(self):
        assert AlignScoring(pair='peptidoform_to_database').pair == PairMode.PEPTIDOFORM_TO_DATABASE

    def test_invalid_pair(self):
        with pytest.raises(ValueError, match="Invalid pair mode"):
            AlignScoring(pair='both')

    def test_self_score(self):
        assert AlignScoring().self_score(Peptide('AGGWHD')) == 41


class TestScorePair:
    def test_identity(self):
        piece = score_pair(Residue('W'), Residue('W'), score=10)
        assert piece.match_type == MatchType.FULL_IDENTITY
        assert (piece.score, piece.local_score) == (21, 11)
        assert (piece.step_a, piece.step_b) == (1, 1)

    def test_isobaric_single(self):
        piece = score_pair(Residue('N', ['Deamidated']), Residue('D'))
        assert piece.match_type == MatchType.ISOBARIC
        assert piece.local_score == 3

    def test_mismatch(self):
        piece = score_pair(Residue('A'), Residue('Q'))
        assert piece.match_type == MatchType.MISMATCH
        assert piece.local_score == -1

    def test_mass_mismatch_depends_on_pair_mode(self):
        a, b = Residue('M'), Residue('M', ['Oxidation'])
        assert score_pair(a, b).match_type == MatchType.MISMATCH
        trusted = AlignScoring(pair=PairMode.DATABASE_TO_PEPTIDOFORM, mass_mismatch=-1)
        piece = score_pair(a, b, trusted)
        assert piece.match_type == MatchType.IDENTITY_MASS_MISMATCH
        assert piece.local_score == 4
        assert score_pair(b, a, trusted).match_type == MatchType.MISMATCH


class TestScoreBlock:
    def test_isobaric(self):
        piece = score_block(Peptide('GG'), Peptide('N'))
        assert piece.match_type == MatchType.ISOBARIC
        assert piece.local_score == 1 + (2 * 3) // 2
        assert (piece.step_a, piece.step_b) == (2, 1)

    def test_rotation(self):
        piece = score_block(Peptide('HD'), Peptide('DH'), score=5)
        assert piece.match_type == MatchType.ROTATION
        assert piece.local_score == 1 + 3 * 2
        assert piece.score == 12

    def test_modified_residues_are_not_rotations(self):
        piece = score_block(Peptide.parse('HN[Deamidated]'), Peptide('DH'))
        assert piece.match_type == MatchType.ISOBARIC

    def test_no_mass_match(self):
        assert score_block(Peptide('GG'), Peptide('Q')) is None

    def test_tolerance(self):
        # K and Q differ by 0.036 Da
        assert score_block(Peptide('AK'), Peptide('QA')) is None
        assert score_block(Peptide('AK'), Peptide('QA'), AlignScoring(tolerance=Tolerance.absolute(0.05))) is not None


class TestScoreGap:
    def test_open_after_match(self):
        piece = score_gap(Piece(10, 4, MatchType.FULL_IDENTITY, 1, 1), True)
        assert (piece.score, piece.local_score) == (5, -5)
        assert (piece.step_a, piece.step_b) == (1, 0)
        assert piece.match_type == MatchType.GAP

    def test_extend_same_axis(self):
        previous = Piece(5, -5, MatchType.GAP, 1, 0)
        assert score_gap(previous, True).local_score == -1
        assert score_gap(previous, False).local_score == -5

    def test_first_step_opens(self):
        assert score_gap(Piece(), False).local_score == -5
