import pytest
from massalign import (Peptide, AlignType, Side, AlignScoring, MatchType, Piece, Alignment, Score, align,
                       EmptySequenceWarning)
from massalign.align.masses import MassProfile
from massalign.align.pairwise import align_cached, determine_score


def pep(text):
    return Peptide.parse(text)


class TestAlignType:
    def test_parse(self):
        assert AlignType.parse('global') == AlignType.GLOBAL
        assert AlignType.parse('local|global_b') == AlignType(Side.LOCAL, Side.GLOBAL_B)
        assert AlignType.parse(AlignType.LOCAL) is AlignType.LOCAL

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid left side"):
            AlignType('semi')

    def test_str(self):
        assert str(AlignType.EITHER_GLOBAL) == 'either_global'
        assert str(AlignType('local', 'global')) == 'local|global'

    def test_sides(self):
        assert Side.GLOBAL.global_a() and Side.GLOBAL.global_b()
        assert Side.GLOBAL_A.global_a() and not Side.GLOBAL_A.global_b()
        assert Side.EITHER_GLOBAL.global_() and not Side.EITHER_GLOBAL.global_a()
        assert not Side.LOCAL.global_()


class TestPiece:
    def test_ops(self):
        assert Piece.op(Piece(0, 0, MatchType.FULL_IDENTITY, 1, 1)) == '='
        assert Piece.op(Piece(0, 0, MatchType.MISMATCH, 1, 1)) == 'X'
        assert Piece.op(Piece(0, 0, MatchType.IDENTITY_MASS_MISMATCH, 1, 1)) == 'm'
        assert Piece.op(Piece(0, 0, MatchType.GAP, 0, 1)) == 'I'
        assert Piece.op(Piece(0, 0, MatchType.GAP, 1, 0)) == 'D'
        assert Piece.op(Piece(0, 0, MatchType.ISOBARIC, 1, 1)) == '1i'
        assert Piece.op(Piece(0, 0, MatchType.ISOBARIC, 3, 2)) == '3:2i'
        assert Piece.op(Piece(0, 0, MatchType.ROTATION, 2, 2)) == '2r'

    def test_cigar_counts_simple_runs(self):
        identity = Piece(0, 0, MatchType.FULL_IDENTITY, 1, 1)
        path = [identity, identity, Piece(0, 0, MatchType.MISMATCH, 1, 1), Piece(0, 0, MatchType.GAP, 1, 0),
                Piece(0, 0, MatchType.GAP, 1, 0), Piece(0, 0, MatchType.ROTATION, 2, 2),
                Piece(0, 0, MatchType.ROTATION, 2, 2), identity]
        assert Piece.cigar(path) == '2=1X2D2r2r1='

    def test_cigar_empty(self):
        assert Piece.cigar([]) == ''


class TestScore:
    def test_build_caps(self):
        assert Score.build(30, 20).normalised == 1.0
        assert Score.build(5, 0).normalised == 0.0

    def test_add(self):
        total = Score.build(30, 38) + Score.build(17, 37)
        assert (total.absolute, total.max) == (47, 75)
        assert total.normalised == pytest.approx(47 / 75)

    def test_determine_score(self):
        path = [Piece(4, 4, MatchType.FULL_IDENTITY, 1, 1), Piece(8, 4, MatchType.ISOBARIC, 1, 2)]
        score = determine_score(pep('AN'), pep('AGG'), path, AlignScoring())
        assert (score.absolute, score.max) == (8, 13)


class TestGlobal:
    def test_blocks(self):
        a = align(pep('ANGARS'), pep('AGGQRS'))
        assert a.short() == '1=1:2i2:1i2='
        assert (a.score.absolute, a.score.max) == (21, 29)
        assert (a.start_a, a.start_b) == (0, 0)
        assert (a.len_a, a.len_b) == (6, 6)

    def test_single_steps(self):
        a = align(pep('ANGARS'), pep('AGGQRS'), steps=1)
        assert a.short() == '1=1X1=1X2='
        assert a.score.absolute == 18
        assert a.maximal_step == 1

    def test_rows(self):
        a = align(pep('ANGARS'), pep('AGGQRS'))
        assert a.rows() == ('AN·GARS', 'AGGQ·RS')
        assert str(a) == 'AN·GARS\nAGGQ·RS'

    def test_identical(self):
        a = align(pep('PEPTIDE'), pep('PEPTIDE'))
        assert a.short() == '7='
        assert a.score.normalised == 1.0
        assert a.distance() == 0.0

    def test_affine_gap(self):
        a = align(pep('MKWCHY'), pep('MKWPPCHY'))
        assert a.short() == '3=2I3='
        # 45 for the identities, -5 to open and -1 to extend
        assert a.score.absolute == 39
        assert a.rows() == ('MKW--CHY', 'MKWPPCHY')

    def test_rotation(self):
        a = align(pep('AGGWHD'), pep('AHYDH'))
        assert a.short() == '1=3:2i2r'
        assert (a.score.absolute, a.score.max) == (17, 37)

    def test_stats(self):
        stats = align(pep('ANGARS'), pep('AGGQRS')).stats()
        assert (stats.identical, stats.mass_similar, stats.gaps, stats.length) == (3, 7, 0, 7)
        assert stats.identity() == pytest.approx(3 / 7)
        assert stats.similarity() == 1.0
        assert stats.gaps_fraction() == 0.0

    def test_mass_difference(self):
        a = align(pep('ANGARS'), pep('AGGQRS'))
        assert abs(a.mass_difference()) < 1e-4
        assert a.ppm() < 1


class TestAnchoring:
    def test_local(self):
        a = align(pep('WWWCHY'), pep('CHYKKK'), align_type=AlignType.LOCAL)
        assert a.short() == '3='
        assert (a.start_a, a.start_b) == (3, 0)
        assert a.score.normalised == 1.0
        assert a.rows() == ('CHY', 'CHY')

    def test_either_global(self):
        a = align(pep('WWWCHY'), pep('CHYKKK'), align_type=AlignType.EITHER_GLOBAL)
        assert a.short() == '3='
        assert (a.start_a, a.start_b) == (3, 0)

    def test_global_forces_full_length(self):
        a = align(pep('WWWCHY'), pep('CHYKKK'))
        assert (a.start_a, a.start_b) == (0, 0)
        assert (a.len_a, a.len_b) == (6, 6)


class TestAlignCached:
    def test_reuses_profiles(self):
        pa, pb = MassProfile(pep('ANGARS'), 4), MassProfile(pep('AGGQRS'), 4)
        assert isinstance(align_cached(pa, pb), Alignment)
        assert align_cached(pa, pb).short() == align(pep('ANGARS'), pep('AGGQRS')).short()

    def test_step_mismatch(self):
        with pytest.raises(ValueError, match="different block lengths"):
            align_cached(MassProfile(pep('PEP'), 2), MassProfile(pep('PEP'), 4))

    def test_empty_sequence_warns(self):
        with pytest.warns(EmptySequenceWarning):
            a = align(Peptide(''), pep('PEP'))
        assert a.short() == '3I'
        assert a.score.absolute == -7
