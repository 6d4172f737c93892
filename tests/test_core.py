import numpy as np
import pytest
from massalign import MassAlignError
from massalign.core.diagonal import DiagonalArray, _tri_index
from massalign.core.peptide import Peptide
from massalign.core.residue import Residue, Modification, ResidueError, MONOISOTOPIC
from massalign.core.tolerance import Tolerance, ToleranceKind


class TestTolerance:
    def test_kind_from_name(self):
        assert Tolerance(5, 'absolute').kind == ToleranceKind.ABSOLUTE
        assert Tolerance(5, 1).kind == ToleranceKind.PPM

    def test_invalid_kind(self):
        with pytest.raises(ValueError, match="Invalid tolerance kind"):
            Tolerance(5, 'percent')

    def test_ppm_bounds(self):
        lo, hi = Tolerance.ppm(10).bounds(1000.0)
        assert lo == pytest.approx(999.99)
        assert hi == pytest.approx(1000.01)

    def test_absolute_bounds(self):
        assert Tolerance.absolute(0.5).bounds(10.0) == (9.5, 10.5)

    def test_within_collections(self):
        tol = Tolerance.absolute(0.01)
        assert tol.within([100.0, 200.0], [199.995])
        assert not tol.within([100.0, 200.0], [150.0])

    def test_within_empty_never_matches(self):
        assert not Tolerance.ppm(10).within([], [100.0])
        assert not Tolerance.ppm(10).within(100.0, [])

    def test_expand_keeps_degenerate_ranges(self):
        lo, hi = Tolerance.ppm(10).expand(np.array([np.inf]), np.array([-np.inf]))
        assert lo[0] > hi[0]

    def test_hashable(self):
        assert len({Tolerance.ppm(10), Tolerance(10.0), Tolerance.absolute(10)}) == 2

    def test_str(self):
        assert str(Tolerance.ppm(10)) == '10 ppm'
        assert str(Tolerance.absolute(0.02)) == '0.02 Da'


class TestResidue:
    def test_unknown_amino_acid(self):
        with pytest.raises(ResidueError, match="Unknown amino acid"):
            Residue('1')

    def test_error_hierarchy(self):
        assert issubclass(ResidueError, MassAlignError)

    def test_modified_mass(self):
        r = Residue('N', ['Deamidated'])
        assert r.is_modified
        assert r.masses == (MONOISOTOPIC['D'],)

    def test_ambiguous_masses(self):
        assert Residue('B').masses == (MONOISOTOPIC['N'], MONOISOTOPIC['D'])
        assert Residue('X').masses == ()

    def test_identity(self):
        assert Residue('N') == Residue('N')
        assert Residue('N') != Residue('N', ['Deamidated'])
        assert len({Residue('N'), Residue('N'), Residue('D')}) == 2

    def test_code_order(self):
        assert Residue('A').code == 0
        assert Residue('Y').code == 19


class TestModification:
    def test_named_case_insensitive(self):
        assert Modification.parse('oxidation').name == 'Oxidation'

    def test_signed_mass(self):
        assert Modification.parse('-18.0106').mass == pytest.approx(-18.0106)

    def test_unsigned_mass_rejected(self):
        with pytest.raises(ResidueError, match="explicit sign"):
            Modification.parse('15.995')

    def test_unknown(self):
        with pytest.raises(ResidueError, match="Unknown modification"):
            Modification.parse('Glycan')


class TestPeptide:
    def test_parse_modifications(self):
        p = Peptide.parse('AM[Oxidation]N[+0.984016]K')
        assert len(p) == 4
        assert p.sequence == 'AMNK'
        assert p[1].is_modified
        assert str(p) == 'AM[Oxidation]N[+0.984016]K'

    def test_parse_skips_whitespace(self):
        assert Peptide.parse('PEP TIDE').sequence == 'PEPTIDE'

    def test_parse_errors(self):
        with pytest.raises(ResidueError, match="without a residue"):
            Peptide.parse('[Oxidation]M')
        with pytest.raises(ResidueError, match="Unclosed"):
            Peptide.parse('M[Oxidation')

    def test_confidence_length(self):
        with pytest.raises(ValueError, match="confidence"):
            Peptide.parse('PEP', confidence=[0.5])

    def test_equality(self):
        assert Peptide.parse('PEP') == Peptide('PEP')
        assert Peptide.parse('PEP') != Peptide.parse('PEP[Methyl]')

    def test_mass(self):
        assert Peptide('GG').mass == pytest.approx(2 * MONOISOTOPIC['G'])


class TestDiagonalArray:
    def test_size(self):
        assert DiagonalArray.size(0, 4) == 0
        assert DiagonalArray.size(3, 4) == 6
        assert DiagonalArray.size(6, 4) == 10 + 2 * 4

    def test_rows_do_not_overlap(self):
        d = DiagonalArray(7, 3)
        cells = [d.index(n, k) for n in range(7) for k in range(min(n + 1, 3))]
        assert cells == list(range(len(d.data)))

    def test_set_get(self):
        d = DiagonalArray(5, 2, fill=-1)
        d[4, 1] = 3
        assert d[4, 1] == 3
        assert d[4, 0] == -1

    def test_out_of_triangle(self):
        d = DiagonalArray(5, 2)
        with pytest.raises(AssertionError):
            d.index(0, 1)
        with pytest.raises(AssertionError):
            d.index(5, 0)

    def test_invalid_depth(self):
        with pytest.raises(ValueError, match="Depth"):
            DiagonalArray(3, 0)

    def test_kernel_index_matches(self):
        d = DiagonalArray(7, 3)
        assert all(_tri_index(n, k, 3) == d.index(n, k) for n in range(7) for k in range(min(n + 1, 3)))

    def test_kernel_index_checks_band(self):
        with pytest.raises(AssertionError):
            _tri_index(1, 2, 3)
        with pytest.raises(AssertionError):
            _tri_index(4, 3, 3)
