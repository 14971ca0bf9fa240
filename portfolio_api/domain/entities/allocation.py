"""Allocation-related domain entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExcludedSymbol:
    """An asset dropped during return alignment for having too little data."""

    symbol: str

    # Number of returns the asset actually had
    length: int

    # Minimum number of returns required to survive alignment
    required: int

    def __str__(self) -> str:
        return f"{self.symbol}({self.length}/{self.required})"


@dataclass(frozen=True)
class LinkageRecord:
    """One merge event of agglomerative clustering.

    Cluster ids 0..N-1 are the original assets; the k-th merge creates
    cluster id N + k.
    """

    left: int
    right: int
    distance: float
    size: int


@dataclass(frozen=True)
class ClusterNode:
    """Entry of the flat cluster table.

    Leaves have no children; internal nodes reference their children by id.
    """

    id: int
    members: tuple[int, ...]
    left: int | None = None
    right: int | None = None
    distance: float = 0.0

    @property
    def is_leaf(self) -> bool:
        return self.left is None


@dataclass(frozen=True)
class ClusterTree:
    """Binary cluster tree stored as a table indexed by node id."""

    nodes: tuple[ClusterNode, ...]
    n_leaves: int

    @property
    def root(self) -> ClusterNode:
        return self.nodes[-1]

    def to_dict(self) -> list[dict]:
        """Serialize the table (one dict per node, ordered by id)."""
        return [
            {
                "id": node.id,
                "members": list(node.members),
                "left": node.left,
                "right": node.right,
                "distance": node.distance,
            }
            for node in self.nodes
        ]


@dataclass(frozen=True)
class WeightEntry:
    """Weight of one asset in a strategy."""

    symbol: str
    weight: float  # fraction, sums to 1 across the strategy
    percentage: str  # formatted, e.g. "12.34%"


@dataclass(frozen=True)
class RiskContributionEntry:
    """Share of total portfolio variance attributable to one asset."""

    symbol: str
    contribution: float
    percentage: str
