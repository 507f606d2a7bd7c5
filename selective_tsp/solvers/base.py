import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..data import Instance, Node
from ..distance import DistanceMatrix, candidate_lists


Tour = List[int]

IMPROVEMENT_EPS = 1e-9


def target_count_for(n: int) -> int:
    return max(2, math.ceil(n / 2))


class ProblemContext:
    """
    Read-only state shared by every heuristic working on one instance:
    the nodes, their distance matrix and the number of nodes a tour must
    visit. Candidate lists are computed on first use and cached.
    """

    def __init__(self, nodes: Sequence[Node], matrix: Optional[DistanceMatrix] = None, candidate_count: int = 10):
        self.nodes = list(nodes)
        self.matrix = matrix if matrix is not None else DistanceMatrix.from_nodes(self.nodes)
        if self.matrix.size != len(self.nodes):
            raise ValueError(
                f"distance matrix covers {self.matrix.size} points but {len(self.nodes)} nodes were given"
            )
        self.dist = self.matrix.rows
        self.costs: List[int] = [node.cost for node in self.nodes]
        self.target_count = target_count_for(len(self.nodes))
        self.candidate_count = candidate_count
        self._candidates: Optional[List[List[int]]] = None

    @classmethod
    def from_instance(cls, instance: Instance, candidate_count: int = 10) -> "ProblemContext":
        return cls(instance.nodes, candidate_count=candidate_count)

    @property
    def size(self) -> int:
        return len(self.nodes)

    @property
    def candidates(self) -> List[List[int]]:
        if self._candidates is None:
            self._candidates = candidate_lists(self.matrix, self.costs, self.candidate_count)
        return self._candidates


def open_route(route: Sequence[int]) -> Tour:
    tour = list(route)
    if len(tour) > 1 and tour[0] == tour[-1]:
        tour.pop()
    return tour


def close_route(tour: Sequence[int]) -> Tour:
    route = list(tour)
    if route:
        route.append(route[0])
    return route


def route_cost(ctx: ProblemContext, route: Sequence[int]) -> float:
    """Cost of a closed route: every edge length plus the visit cost of its tail node."""
    dist = ctx.dist
    costs = ctx.costs
    total = 0.0
    for i in range(len(route) - 1):
        a = route[i]
        total += dist[a][route[i + 1]] + costs[a]
    return float(total)


def reverse_segment(tour: Tour, start: int, end: int) -> None:
    """Reverse ``tour[start..end]`` in place, walking forward and wrapping past the end."""
    n = len(tour)
    length = (end - start) % n + 1
    for k in range(length // 2):
        i = (start + k) % n
        j = (end - k) % n
        tour[i], tour[j] = tour[j], tour[i]


@dataclass
class Result:
    route: Tour
    total_cost: float
    solver_name: str = field(default="", compare=False)

    @classmethod
    def from_route(cls, ctx: ProblemContext, route: Sequence[int], solver_name: str = "") -> "Result":
        closed = close_route(open_route(route))
        return cls(route=closed, total_cost=route_cost(ctx, closed), solver_name=solver_name)

    @property
    def tour(self) -> Tour:
        return open_route(self.route)

    def __str__(self) -> str:
        return f"Route: {self.route}\nTotal cost: {self.total_cost:.2f}"


class InfeasibleConstruction(RuntimeError):
    """A construction ran out of nodes or positions before reaching the target size."""

    def __init__(self, result: Result, target_count: int):
        self.result = result
        self.target_count = target_count
        super().__init__(
            f"construction stopped at {len(result.tour)} of {target_count} nodes"
        )


class Solver(ABC):
    name: str = "base"

    @abstractmethod
    def solve(self, ctx: ProblemContext) -> Result:
        raise NotImplementedError


class Improver(ABC):
    name: str = "improver"

    @abstractmethod
    def improve(self, ctx: ProblemContext, route: Sequence[int]) -> Result:
        raise NotImplementedError
