from typing import List, Sequence

import numpy as np

from .data import Node


class DimensionMismatch(ValueError):
    """Coordinate arrays of different lengths were given to the matrix builder."""


class DistanceMatrix:
    """
    Pairwise rounded Euclidean distances between all points.

    Values are rounded half up, so 0.5 becomes 1. The underlying array is
    marked read-only; ``rows`` holds the same values as nested lists, which
    is what the search loops index into.
    """

    def __init__(self, array: np.ndarray):
        array = np.array(array, dtype=np.float64)
        if array.ndim != 2 or array.shape[0] != array.shape[1]:
            raise DimensionMismatch(f"distance matrix must be square, got shape {array.shape}")
        array.setflags(write=False)
        self.array = array
        self.rows: List[List[float]] = array.tolist()

    @property
    def size(self) -> int:
        return self.array.shape[0]

    def distance(self, i: int, j: int) -> float:
        return self.rows[i][j]

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, i: int) -> List[float]:
        return self.rows[i]

    @classmethod
    def from_nodes(cls, nodes: Sequence[Node]) -> "DistanceMatrix":
        return build_distance_matrix([n.x for n in nodes], [n.y for n in nodes])


def build_distance_matrix(xs: Sequence[float], ys: Sequence[float]) -> DistanceMatrix:
    if len(xs) != len(ys):
        raise DimensionMismatch(
            f"x and y coordinate arrays must have the same length ({len(xs)} != {len(ys)})"
        )
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    dx = x[:, None] - x[None, :]
    dy = y[:, None] - y[None, :]
    return DistanceMatrix(np.floor(np.sqrt(dx * dx + dy * dy) + 0.5))


def candidate_lists(matrix: DistanceMatrix, costs: Sequence[float], k: int = 10) -> List[List[int]]:
    """
    For every node, the ``k`` other nodes with the smallest edge length plus
    visit cost. Ties keep the lower index first. When ``k`` exceeds ``n - 1``
    every other node is returned.
    """
    if k < 0:
        raise ValueError("candidate list size must be non-negative")
    n = matrix.size
    weights = matrix.array + np.asarray(costs, dtype=np.float64)[None, :]
    np.fill_diagonal(weights, np.inf)
    order = np.argsort(weights, axis=1, kind="stable")
    keep = min(k, max(n - 1, 0))
    return [row[:keep].tolist() for row in order]
