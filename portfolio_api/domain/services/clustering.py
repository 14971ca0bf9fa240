"""Hierarchical clustering and quasi-diagonalization.

Single-linkage agglomerative clustering over a correlation distance
matrix. Cluster ids 0..N-1 are the original assets and the k-th merge
creates id N + k, matching SciPy's linkage convention.

Ties between equally distant pairs are broken by the lexicographically
smallest (left_id, right_id) pair among the active clusters, so the
output is reproducible for any input.
"""

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, is_valid_linkage

from portfolio_api.domain.entities.allocation import ClusterNode, ClusterTree, LinkageRecord
from portfolio_api.domain.exceptions import DataValidationError


def _as_square(distance: pd.DataFrame | np.ndarray) -> np.ndarray:
    values = np.asarray(distance, dtype=float)
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise DataValidationError(
            f"Distance matrix must be square, got shape {values.shape}",
            field="distance",
        )
    if not np.all(np.isfinite(values)):
        raise DataValidationError("Distance matrix contains non-finite values", field="distance")
    if not np.allclose(values, values.T):
        raise DataValidationError("Distance matrix must be symmetric", field="distance")
    return values


def hierarchical_cluster(distance: pd.DataFrame | np.ndarray) -> list[LinkageRecord]:
    """Perform single-linkage agglomerative clustering.

    Each step merges the closest pair of active clusters; the distance
    from the merged cluster to any other is the minimum of the distances
    of its two inputs.

    Args:
        distance: N x N symmetric distance matrix

    Returns:
        N - 1 linkage records in merge order (empty for N <= 1)
    """
    values = _as_square(distance)
    n = values.shape[0]
    if n <= 1:
        return []

    total = 2 * n - 1
    work = np.full((total, total), np.inf)
    work[:n, :n] = values

    sizes = [1] * n + [0] * (n - 1)
    # Kept ascending: new ids are always larger than every existing id
    active = list(range(n))
    linkage: list[LinkageRecord] = []

    for new_id in range(n, total):
        idx = np.array(active)
        pairs = work[np.ix_(idx, idx)]
        # Only a < b pairs; argmin then picks the first minimum in row-major order
        pairs[np.tril_indices(len(idx))] = np.inf

        flat = int(np.argmin(pairs))
        a, b = divmod(flat, len(idx))
        i, j = active[a], active[b]
        dist = float(pairs[a, b])

        sizes[new_id] = sizes[i] + sizes[j]
        linkage.append(LinkageRecord(left=i, right=j, distance=dist, size=sizes[new_id]))

        merged = np.minimum(work[i], work[j])
        work[new_id, :] = merged
        work[:, new_id] = merged
        work[new_id, new_id] = np.inf

        active.remove(i)
        active.remove(j)
        active.append(new_id)

    return linkage


def build_cluster_tree(linkage: list[LinkageRecord], n: int) -> ClusterTree:
    """Build the flat cluster table from linkage records.

    Each internal node lists its left child's members followed by its
    right child's members.

    Args:
        linkage: Linkage records from hierarchical_cluster
        n: Number of original items

    Returns:
        ClusterTree with nodes ordered by id (root last)
    """
    if len(linkage) != max(n - 1, 0):
        raise DataValidationError(
            f"Expected {max(n - 1, 0)} linkage records for {n} items, got {len(linkage)}",
            field="linkage",
        )

    nodes: list[ClusterNode] = [ClusterNode(id=i, members=(i,)) for i in range(n)]

    for k, record in enumerate(linkage):
        new_id = n + k
        if record.left >= new_id or record.right >= new_id:
            raise DataValidationError(
                f"Linkage record {k} references a cluster that does not exist yet",
                field="linkage",
            )
        nodes.append(
            ClusterNode(
                id=new_id,
                members=nodes[record.left].members + nodes[record.right].members,
                left=record.left,
                right=record.right,
                distance=record.distance,
            )
        )

    return ClusterTree(nodes=tuple(nodes), n_leaves=n)


def get_quasi_diagonal_order(linkage: list[LinkageRecord], n: int) -> list[int]:
    """Get quasi-diagonal ordering of items from hierarchical clustering.

    This reorders items so that similar items are adjacent,
    making the covariance matrix approximately block-diagonal.

    Args:
        linkage: Linkage records from hierarchical_cluster
        n: Number of original items

    Returns:
        List of indices in quasi-diagonal order (a permutation of 0..n-1)
    """
    if n <= 1:
        return list(range(n))
    if not linkage:
        return list(range(n))

    tree = build_cluster_tree(linkage, n)
    return list(tree.root.members)


def linkage_to_hierarchy(linkage: list[LinkageRecord], symbols: list[str]) -> dict:
    """Convert linkage records to a nested dendrogram structure.

    Leaves are {"name": symbol, "value": 1}; internal nodes are
    {"name": "Cluster k", "dist": distance, "children": [left, right]}.
    """
    n = len(symbols)
    if n == 0:
        return {"name": "root", "children": []}
    if n == 1:
        return {"name": symbols[0], "value": 1}

    nodes: list[dict] = [{"name": symbol, "value": 1} for symbol in symbols]
    for k, record in enumerate(linkage):
        nodes.append(
            {
                "name": f"Cluster {k + 1}",
                "dist": record.distance,
                "children": [nodes[record.left], nodes[record.right]],
            }
        )

    return nodes[-1]


def to_linkage_matrix(linkage: list[LinkageRecord]) -> np.ndarray:
    """Convert linkage records to SciPy's (N-1) x 4 linkage matrix.

    The result can be passed directly to scipy.cluster.hierarchy.dendrogram.
    """
    matrix = np.array(
        [[record.left, record.right, record.distance, record.size] for record in linkage],
        dtype=float,
    ).reshape(-1, 4)
    if len(matrix):
        is_valid_linkage(matrix, throw=True, name="linkage")
    return matrix


def clusters_at_threshold(linkage: list[LinkageRecord], n: int, threshold: float) -> list[int]:
    """Get flat cluster assignments at a distance threshold.

    Assets joined by merges at distance <= threshold share a cluster.
    Labels are renumbered 0, 1, 2, ... in order of first appearance.

    Args:
        linkage: Linkage records from hierarchical_cluster
        n: Number of original items
        threshold: Maximum merge distance

    Returns:
        Cluster label for each original item
    """
    if n <= 1:
        return [0] * n

    labels = fcluster(to_linkage_matrix(linkage), t=threshold, criterion="distance")

    renumbered: dict[int, int] = {}
    for label in labels:
        renumbered.setdefault(int(label), len(renumbered))

    return [renumbered[int(label)] for label in labels]
