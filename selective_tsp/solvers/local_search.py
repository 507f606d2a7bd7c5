"""
Local search over a single selective-TSP tour.

The neighborhood combines one intra-route move type (node swap or 2-opt
edge reversal) with the inter-route exchange of a selected node for an
unselected one. Moves are evaluated by their cost delta only; the tour is
touched when a move is applied.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Union

from .base import (
    IMPROVEMENT_EPS,
    Improver,
    ProblemContext,
    Result,
    Tour,
    close_route,
    open_route,
    reverse_segment,
    route_cost,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeSwap:
    i: int
    j: int

    def delta(self, ctx: ProblemContext, tour: Tour) -> float:
        return node_swap_delta(ctx, tour, self.i, self.j)

    def apply(self, tour: Tour) -> None:
        tour[self.i], tour[self.j] = tour[self.j], tour[self.i]


@dataclass(frozen=True)
class EdgeReversal:
    i: int
    j: int

    def delta(self, ctx: ProblemContext, tour: Tour) -> float:
        return two_opt_delta(ctx, tour, self.i, self.j)

    def apply(self, tour: Tour) -> None:
        reverse_segment(tour, self.i + 1, self.j)


@dataclass(frozen=True)
class Exchange:
    position: int
    node: int

    def delta(self, ctx: ProblemContext, tour: Tour) -> float:
        return exchange_delta(ctx, tour, self.position, self.node)

    def apply(self, tour: Tour) -> None:
        tour[self.position] = self.node


Move = Union[NodeSwap, EdgeReversal, Exchange]


def node_swap_delta(ctx: ProblemContext, tour: Sequence[int], i: int, j: int) -> float:
    n = len(tour)
    if i == j or n <= 3:
        # every ordering of three nodes is the same cycle
        return 0.0
    if i > j:
        i, j = j, i
    dist = ctx.dist
    if j == i + 1 or (i == 0 and j == n - 1):
        first, second = (i, j) if j == i + 1 else (j, i)
        p = tour[(first - 1) % n]
        x = tour[first]
        y = tour[second]
        q = tour[(second + 1) % n]
        return dist[p][y] + dist[x][q] - dist[p][x] - dist[y][q]
    ni = tour[i]
    nj = tour[j]
    ip = tour[(i - 1) % n]
    inx = tour[(i + 1) % n]
    jp = tour[(j - 1) % n]
    jn = tour[(j + 1) % n]
    before = dist[ip][ni] + dist[ni][inx] + dist[jp][nj] + dist[nj][jn]
    after = dist[ip][nj] + dist[nj][inx] + dist[jp][ni] + dist[ni][jn]
    return after - before


def two_opt_delta(ctx: ProblemContext, tour: Sequence[int], i: int, j: int) -> float:
    dist = ctx.dist
    n = len(tour)
    a = tour[i]
    b = tour[(i + 1) % n]
    c = tour[j]
    d = tour[(j + 1) % n]
    return dist[a][c] + dist[b][d] - dist[a][b] - dist[c][d]


def exchange_delta(ctx: ProblemContext, tour: Sequence[int], position: int, node: int) -> float:
    dist = ctx.dist
    n = len(tour)
    selected = tour[position]
    prev = tour[(position - 1) % n]
    nxt = tour[(position + 1) % n]
    before = dist[prev][selected] + dist[selected][nxt] + ctx.costs[selected]
    after = dist[prev][node] + dist[node][nxt] + ctx.costs[node]
    return after - before


def is_valid_two_opt(n: int, i: int, j: int) -> bool:
    return 0 <= i and j < n and j >= i + 2 and not (i == 0 and j == n - 1)


def unselected_nodes(ctx: ProblemContext, tour: Sequence[int]) -> List[int]:
    selected = set(tour)
    return [node for node in range(ctx.size) if node not in selected]


def full_neighborhood(ctx: ProblemContext, tour: Sequence[int], node_swap: bool) -> List[Move]:
    n = len(tour)
    moves: List[Move] = []
    if node_swap:
        for i in range(n - 1):
            for j in range(i + 1, n):
                moves.append(NodeSwap(i, j))
    else:
        for i in range(n - 2):
            for j in range(i + 2, n):
                if i == 0 and j == n - 1:
                    continue
                moves.append(EdgeReversal(i, j))
    outside = unselected_nodes(ctx, tour)
    for i in range(n):
        for node in outside:
            moves.append(Exchange(i, node))
    return moves


def candidate_neighborhood(ctx: ProblemContext, tour: Sequence[int], node_swap: bool) -> List[Move]:
    """
    Moves that introduce at least one candidate edge. A 2-opt move can add
    the edge ``(u, v)`` either by removing the edges leaving both nodes or
    the edges entering both nodes; both variants are generated.
    """
    n = len(tour)
    candidates = ctx.candidates
    position: Dict[int, int] = {node: idx for idx, node in enumerate(tour)}
    seen: Set[Move] = set()
    moves: List[Move] = []

    def add(move: Move) -> None:
        if move not in seen:
            seen.add(move)
            moves.append(move)

    for i, node in enumerate(tour):
        for neighbor in candidates[node]:
            j = position.get(neighbor)
            if j is None:
                continue
            if node_swap:
                add(NodeSwap(min(i, j), max(i, j)))
                continue
            for a, b in ((i, j), ((i - 1) % n, (j - 1) % n)):
                lo, hi = min(a, b), max(a, b)
                if is_valid_two_opt(n, lo, hi):
                    add(EdgeReversal(lo, hi))
    for i, node in enumerate(tour):
        for neighbor in candidates[node]:
            if neighbor not in position:
                add(Exchange(i, neighbor))
    return moves


@dataclass
class LocalSearchConfig:
    steepest: bool = True
    node_swap: bool = False
    use_candidates: bool = False
    use_move_list: bool = False

    def __post_init__(self):
        if self.use_move_list:
            if not self.steepest or self.node_swap:
                raise ValueError("move-list search requires steepest descent with edge reversal")
            if self.use_candidates:
                raise ValueError("move-list search does not combine with candidate restriction")

    @property
    def label(self) -> str:
        parts = ["steepest" if self.steepest else "greedy", "node" if self.node_swap else "edge"]
        if self.use_candidates:
            parts.append("candidates")
        if self.use_move_list:
            parts.append("move_list")
        return "ls_" + "_".join(parts)


class LocalSearch(Improver):
    name = "local_search"

    def __init__(self, config: Optional[LocalSearchConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or LocalSearchConfig()
        self.rng = rng or random.Random()
        self.name = self.config.label
        self.iterations = 0

    def improve(self, ctx: ProblemContext, route: Sequence[int]) -> Result:
        tour = open_route(route)
        cost = route_cost(ctx, close_route(tour))
        self.iterations = 0
        if len(tour) < 4 and not self.config.node_swap:
            return Result(close_route(tour), cost, self.name)
        if self.config.use_move_list:
            # imported here: move_list builds on the delta functions above
            from .move_list import MoveListSearch

            search = MoveListSearch(ctx, tour)
            cost = search.run(cost)
            self.iterations = search.iterations
        else:
            cost = self._descend(ctx, tour, cost)
        return Result(close_route(tour), cost, self.name)

    def _neighborhood(self, ctx: ProblemContext, tour: Tour) -> List[Move]:
        if self.config.use_candidates:
            return candidate_neighborhood(ctx, tour, self.config.node_swap)
        return full_neighborhood(ctx, tour, self.config.node_swap)

    def _descend(self, ctx: ProblemContext, tour: Tour, cost: float) -> float:
        while True:
            moves = self._neighborhood(ctx, tour)
            if not self.config.steepest:
                self.rng.shuffle(moves)
            best: Optional[Move] = None
            best_delta = 0.0
            for move in moves:
                delta = move.delta(ctx, tour)
                if delta < -IMPROVEMENT_EPS and (best is None or delta < best_delta):
                    best = move
                    best_delta = delta
                    if not self.config.steepest:
                        break
            if best is None:
                return cost
            best.apply(tour)
            cost += best_delta
            self.iterations += 1
