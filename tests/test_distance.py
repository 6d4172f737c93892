import numpy as np
import pytest
from massalign import Peptide
from massalign.containers import Cluster, DistanceMatrix
from massalign.align.multi import AlignedLine


class TestDistanceMatrix:
    def test_condensed(self):
        d = DistanceMatrix([1, 4, 2])
        assert len(d) == 3
        assert d[0, 2] == 4
        assert d[2, 0] == 4
        assert d[1, 1] == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError, match="condensed"):
            DistanceMatrix([1.0, 2.0])

    def test_sizes_must_match(self):
        with pytest.raises(ValueError, match="cluster sizes"):
            DistanceMatrix([1.0], sizes=[1, 1, 1])

    def test_diagonal_fixed(self):
        d = DistanceMatrix(np.zeros(3))
        with pytest.raises(IndexError):
            d[1, 1] = 2.0

    def test_set(self):
        d = DistanceMatrix(np.zeros(3))
        d[2, 1] = 0.5
        assert d[1, 2] == 0.5

    def test_min(self):
        d = DistanceMatrix([3, 2, 1])
        assert d.min() == (1, 2, 1.0)

    def test_min_ties_go_to_lowest_index(self):
        d = DistanceMatrix(np.full(6, 0.5))
        assert d.min() == (0, 1, 0.5)
        d[0, 1] = 0.7
        assert d.min() == (0, 2, 0.5)

    def test_min_needs_two(self):
        with pytest.raises(ValueError):
            DistanceMatrix([]).min()

    def test_merge_average(self):
        d = DistanceMatrix([1, 4, 2])
        d.merge(0, 1)
        assert len(d) == 2
        assert d.sizes == (2, 1)
        assert d[0, 1] == 3.0

    def test_merge_weighted_by_size(self):
        d = DistanceMatrix([1, 4, 1, 2, 9, 5])
        d.merge(0, 1)
        # Clusters are now {0, 1}, {2}, {3}
        d.merge(0, 1)
        # {0, 1, 2} to {3}: (2 * 5 + 1 * 5) / 3
        assert d.sizes == (3, 1)
        assert d[0, 1] == pytest.approx(5.0)

    def test_merge_keeps_lower_index(self):
        d = DistanceMatrix([5, 5, 5, 6, 1, 7])
        d.merge(3, 1)
        assert len(d) == 3
        assert d[0, 1] == 5.0
        assert d[1, 2] == pytest.approx(6.5)
        assert d[0, 2] == 5.0

    def test_to_csv(self):
        d = DistanceMatrix([0.25])
        assert d.to_csv(['a', 'b']) == ',a,b\na,0.0000,0.2500\nb,0.2500,0.0000'

    def test_to_square(self):
        square = np.array([[0, 1, 4], [1, 0, 2], [4, 2, 0]], dtype=float)
        np.testing.assert_array_equal(DistanceMatrix([1, 4, 2]).to_square(), square)


class TestCluster:
    def test_columns(self):
        c = Cluster([AlignedLine.single(0, Peptide('PEPTIDE')), AlignedLine.single(1, Peptide('PEP'))], id_=3)
        assert len(c) == 2
        assert c.columns == 7
        assert c.id == 3
        assert c.score is None
        assert c[1].original_index == 1

    def test_empty(self):
        assert Cluster([]).columns == 0
