"""Unit tests for hierarchical clustering and quasi-diagonalization."""

import numpy as np
import pandas as pd
import pytest
from scipy.cluster.hierarchy import linkage as scipy_linkage
from scipy.spatial.distance import squareform

from portfolio_api.domain.exceptions import DataValidationError
from portfolio_api.domain.services.clustering import (
    build_cluster_tree,
    clusters_at_threshold,
    get_quasi_diagonal_order,
    hierarchical_cluster,
    linkage_to_hierarchy,
    to_linkage_matrix,
)

THREE_ASSET_DIST = np.array([
    [0.0, 0.1, 0.5],
    [0.1, 0.0, 0.4],
    [0.5, 0.4, 0.0],
])


def _random_distance(n: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    returns = pd.DataFrame(rng.normal(size=(200, n)))
    corr = returns.corr().to_numpy()
    dist = np.sqrt(np.clip(0.5 * (1 - corr), 0.0, 1.0))
    np.fill_diagonal(dist, 0.0)
    return dist


class TestHierarchicalCluster:
    """Tests for hierarchical_cluster."""

    def test_three_assets(self):
        """Closest pair merges first, then single linkage joins the rest."""
        linkage = hierarchical_cluster(THREE_ASSET_DIST)

        assert len(linkage) == 2
        assert (linkage[0].left, linkage[0].right, linkage[0].size) == (0, 1, 2)
        assert linkage[0].distance == pytest.approx(0.1)
        # min(d(0,2), d(1,2)) = 0.4
        assert (linkage[1].left, linkage[1].right, linkage[1].size) == (2, 3, 3)
        assert linkage[1].distance == pytest.approx(0.4)

    @pytest.mark.parametrize("n", [2, 3, 5, 10, 25])
    def test_n_minus_one_records(self, n):
        """Exactly N - 1 merge events; the last one covers every asset."""
        linkage = hierarchical_cluster(_random_distance(n))

        assert len(linkage) == n - 1
        assert linkage[-1].size == n

    def test_single_asset(self):
        """One asset has no merges."""
        assert hierarchical_cluster(np.zeros((1, 1))) == []

    def test_merge_heights_match_scipy(self):
        """Single-linkage merge heights agree with SciPy."""
        dist = _random_distance(12, seed=3)
        ours = [record.distance for record in hierarchical_cluster(dist)]
        expected = scipy_linkage(squareform(dist, checks=False), method="single")[:, 2]

        assert np.allclose(sorted(ours), sorted(expected))

    def test_heights_non_decreasing(self):
        """Single linkage is monotonic."""
        linkage = hierarchical_cluster(_random_distance(15, seed=5))
        heights = [record.distance for record in linkage]

        assert heights == sorted(heights)

    def test_ties_broken_by_smallest_id_pair(self):
        """All-zero distances merge the lexicographically smallest pair first."""
        linkage = hierarchical_cluster(np.zeros((3, 3)))

        assert [(r.left, r.right, r.distance, r.size) for r in linkage] == [
            (0, 1, 0.0, 2),
            (2, 3, 0.0, 3),
        ]

    def test_ties_with_four_assets(self):
        """Equal distances everywhere still give a reproducible dendrogram."""
        dist = np.full((4, 4), 0.5)
        np.fill_diagonal(dist, 0.0)
        linkage = hierarchical_cluster(dist)

        assert [(r.left, r.right) for r in linkage] == [(0, 1), (2, 3), (4, 5)]

    def test_accepts_dataframe(self):
        """Labelled distance matrices are accepted."""
        dist = pd.DataFrame(THREE_ASSET_DIST, index=list("ABC"), columns=list("ABC"))
        assert len(hierarchical_cluster(dist)) == 2

    def test_large_portfolio(self):
        """Hundreds of assets cluster without recursion limits."""
        linkage = hierarchical_cluster(_random_distance(150, seed=11))
        assert len(linkage) == 149

    def test_non_square_raises(self):
        """Distance matrix must be square."""
        with pytest.raises(DataValidationError):
            hierarchical_cluster(np.zeros((2, 3)))

    def test_asymmetric_raises(self):
        """Distance matrix must be symmetric."""
        dist = THREE_ASSET_DIST.copy()
        dist[0, 2] = 0.9
        with pytest.raises(DataValidationError):
            hierarchical_cluster(dist)

    def test_non_finite_raises(self):
        """NaN distances are rejected."""
        dist = THREE_ASSET_DIST.copy()
        dist[0, 2] = dist[2, 0] = np.nan
        with pytest.raises(DataValidationError):
            hierarchical_cluster(dist)


class TestClusterTree:
    """Tests for build_cluster_tree and get_quasi_diagonal_order."""

    def test_tree_table(self):
        """Leaves first, then one internal node per merge."""
        tree = build_cluster_tree(hierarchical_cluster(THREE_ASSET_DIST), 3)

        assert len(tree.nodes) == 5
        assert tree.nodes[0].is_leaf
        assert tree.nodes[3].members == (0, 1)
        assert (tree.nodes[3].left, tree.nodes[3].right) == (0, 1)
        assert tree.root.id == 4
        assert tree.root.members == (2, 0, 1)

    def test_quasi_diagonal_order(self):
        """Order lists left-subtree leaves before right-subtree leaves."""
        order = get_quasi_diagonal_order(hierarchical_cluster(THREE_ASSET_DIST), 3)
        assert order == [2, 0, 1]

    @pytest.mark.parametrize("n", [2, 4, 9, 30])
    def test_order_is_permutation(self, n):
        """Quasi-diagonal order is a bijection on 0..N-1."""
        order = get_quasi_diagonal_order(hierarchical_cluster(_random_distance(n, seed=n)), n)

        assert sorted(order) == list(range(n))

    def test_correlated_assets_are_adjacent(self):
        """Assets driven by the same factor end up next to each other."""
        rng = np.random.default_rng(1)
        f1 = rng.normal(size=300)
        f2 = rng.normal(size=300)
        returns = pd.DataFrame({
            "A1": f1 + 0.05 * rng.normal(size=300),
            "B1": f2 + 0.05 * rng.normal(size=300),
            "A2": f1 + 0.05 * rng.normal(size=300),
            "B2": f2 + 0.05 * rng.normal(size=300),
        })
        dist = np.sqrt(np.clip(0.5 * (1 - returns.corr().to_numpy()), 0.0, 1.0))
        np.fill_diagonal(dist, 0.0)
        order = get_quasi_diagonal_order(hierarchical_cluster(dist), 4)

        assert abs(order.index(0) - order.index(2)) == 1
        assert abs(order.index(1) - order.index(3)) == 1

    def test_small_inputs(self):
        """Trivial orders for zero or one asset."""
        assert get_quasi_diagonal_order([], 0) == []
        assert get_quasi_diagonal_order([], 1) == [0]

    def test_wrong_record_count_raises(self):
        """The table needs exactly N - 1 records."""
        with pytest.raises(DataValidationError):
            build_cluster_tree(hierarchical_cluster(THREE_ASSET_DIST), 4)

    def test_serializable(self):
        """The flat table serializes to plain dicts."""
        tree = build_cluster_tree(hierarchical_cluster(THREE_ASSET_DIST), 3)
        table = tree.to_dict()

        assert table[4] == {"id": 4, "members": [2, 0, 1], "left": 2, "right": 3, "distance": pytest.approx(0.4)}


class TestExports:
    """Tests for hierarchy, SciPy and threshold exports."""

    def test_hierarchy(self):
        """Nested structure mirrors the merges."""
        hierarchy = linkage_to_hierarchy(hierarchical_cluster(THREE_ASSET_DIST), ["A", "B", "C"])

        assert hierarchy["name"] == "Cluster 2"
        assert hierarchy["dist"] == pytest.approx(0.4)
        left, right = hierarchy["children"]
        assert left == {"name": "C", "value": 1}
        assert [child["name"] for child in right["children"]] == ["A", "B"]

    def test_hierarchy_trivial(self):
        """Zero and one symbols have fixed shapes."""
        assert linkage_to_hierarchy([], []) == {"name": "root", "children": []}
        assert linkage_to_hierarchy([], ["A"]) == {"name": "A", "value": 1}

    def test_linkage_matrix(self):
        """SciPy-format matrix with one row per merge."""
        matrix = to_linkage_matrix(hierarchical_cluster(THREE_ASSET_DIST))

        assert matrix.shape == (2, 4)
        assert matrix[1].tolist() == pytest.approx([2.0, 3.0, 0.4, 3.0])

    @pytest.mark.parametrize(
        "threshold, expected",
        [(0.05, [0, 1, 2]), (0.2, [0, 0, 1]), (0.45, [0, 0, 0])],
    )
    def test_clusters_at_threshold(self, threshold, expected):
        """Merges at or below the threshold share a label."""
        labels = clusters_at_threshold(hierarchical_cluster(THREE_ASSET_DIST), 3, threshold)
        assert labels == expected
