import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .base import InfeasibleConstruction, ProblemContext, Result, Solver, Tour


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Insertion:
    node: int
    position: int
    delta: float


def _check_start(ctx: ProblemContext, start: int) -> None:
    if not 0 <= start < ctx.size:
        raise IndexError(f"start node {start} out of range for {ctx.size} nodes")


def _finish(ctx: ProblemContext, tour: Tour, name: str) -> Result:
    result = Result.from_route(ctx, tour, solver_name=name)
    if len(tour) < ctx.target_count:
        raise InfeasibleConstruction(result, ctx.target_count)
    return result


def insertion_deltas(
    ctx: ProblemContext,
    tour: Sequence[int],
    node: int,
    cyclic: bool,
    allowed: Optional[set] = None,
) -> List[Insertion]:
    """
    Cost increase of inserting ``node`` at every position of ``tour``.

    Cyclic positions sit between consecutive nodes including the wrap edge;
    a one-node tour is treated as the degenerate cycle ``start -> start``.
    Path positions additionally allow "before first" and "after last"
    without closing edges. With ``allowed``, only positions with an endpoint
    in that set are returned.
    """
    dist = ctx.dist
    cost = ctx.costs[node]
    row = dist[node]
    size = len(tour)
    out: List[Insertion] = []
    if cyclic:
        for pos in range(size):
            a = tour[pos]
            b = tour[(pos + 1) % size]
            if allowed is not None and a not in allowed and b not in allowed:
                continue
            out.append(Insertion(node, pos + 1, row[a] + row[b] - dist[a][b] + cost))
        return out
    for pos in range(size + 1):
        if pos == 0:
            b = tour[0]
            if allowed is not None and b not in allowed:
                continue
            delta = row[b] + cost
        elif pos == size:
            a = tour[-1]
            if allowed is not None and a not in allowed:
                continue
            delta = row[a] + cost
        else:
            a = tour[pos - 1]
            b = tour[pos]
            if allowed is not None and a not in allowed and b not in allowed:
                continue
            delta = row[a] + row[b] - dist[a][b] + cost
        out.append(Insertion(node, pos, delta))
    return out


def _unused(ctx: ProblemContext, tour: Sequence[int]) -> List[int]:
    used = set(tour)
    return [j for j in range(ctx.size) if j not in used]


def cheapest_insertion(ctx: ProblemContext, tour: Tour, cyclic: bool = True) -> Tour:
    """Grow ``tour`` in place with the cheapest (node, position) pair until it is full."""
    while len(tour) < ctx.target_count:
        best: Optional[Insertion] = None
        for j in _unused(ctx, tour):
            for ins in insertion_deltas(ctx, tour, j, cyclic):
                if best is None or ins.delta < best.delta:
                    best = ins
        if best is None:
            break
        tour.insert(best.position, best.node)
    return tour


def _score(deltas: List[Insertion], k: int, regret_weight: float):
    ranked = sorted(deltas, key=lambda ins: ins.delta)
    best = ranked[0]
    regret = 0.0
    for m in range(1, min(k, len(ranked))):
        regret += ranked[m].delta - best.delta
    return regret_weight * regret - (1 - regret_weight) * best.delta, best


def regret_fill(
    ctx: ProblemContext,
    tour: Tour,
    regret_weight: float,
    k: int = 2,
    cyclic: bool = True,
    use_candidates: bool = False,
) -> Tour:
    """Grow ``tour`` in place by weighted k-regret insertion until it is full."""
    if not 0.0 <= regret_weight <= 1.0:
        raise ValueError(f"regret weight must lie in [0, 1], got {regret_weight}")
    if k < 1:
        raise ValueError("k must be at least 1")
    candidate_sets = [set(c) for c in ctx.candidates] if use_candidates else None
    while len(tour) < ctx.target_count:
        unused = _unused(ctx, tour)
        if not unused:
            break
        choice = _pick_regret(ctx, tour, unused, regret_weight, k, cyclic, candidate_sets)
        if choice is None and candidate_sets is not None:
            logger.debug("no candidate-restricted insertion at size %d, scanning all positions", len(tour))
            choice = _pick_regret(ctx, tour, unused, regret_weight, k, cyclic, None)
        if choice is None:
            break
        tour.insert(choice.position, choice.node)
    return tour


def _pick_regret(ctx, tour, unused, regret_weight, k, cyclic, candidate_sets) -> Optional[Insertion]:
    best_score = float("-inf")
    choice: Optional[Insertion] = None
    for j in unused:
        allowed = candidate_sets[j] if candidate_sets is not None else None
        deltas = insertion_deltas(ctx, tour, j, cyclic, allowed)
        if not deltas:
            continue
        score, best = _score(deltas, k, regret_weight)
        if choice is None or score > best_score or (score == best_score and best.delta < choice.delta):
            best_score = score
            choice = best
    return choice


def _seed_partner(ctx: ProblemContext, start: int) -> Optional[int]:
    row = ctx.dist[start]
    costs = ctx.costs
    partner = None
    best = float("inf")
    for j in range(ctx.size):
        if j == start:
            continue
        val = 2 * row[j] + costs[start] + costs[j]
        if val < best:
            best = val
            partner = j
    return partner


def _seed_pair(ctx: ProblemContext, start: int) -> Tour:
    partner = _seed_partner(ctx, start)
    return [start] if partner is None else [start, partner]


def random_tour(ctx: ProblemContext, rng: Optional[random.Random] = None) -> Result:
    rng = rng or random.Random()
    nodes = list(range(ctx.size))
    rng.shuffle(nodes)
    return _finish(ctx, nodes[: ctx.target_count], "random")


def nearest_neighbor_end(ctx: ProblemContext, start: int) -> Result:
    _check_start(ctx, start)
    dist = ctx.dist
    costs = ctx.costs
    tour = [start]
    used = {start}
    current = start
    while len(tour) < ctx.target_count:
        row = dist[current]
        nxt = None
        best = float("inf")
        for j in range(ctx.size):
            if j in used:
                continue
            d = row[j] + costs[j]
            if d < best:
                best = d
                nxt = j
        if nxt is None:
            break
        tour.append(nxt)
        used.add(nxt)
        current = nxt
    return _finish(ctx, tour, "nearest_neighbor_end")


def nearest_neighbor_flexible(ctx: ProblemContext, start: int) -> Result:
    _check_start(ctx, start)
    tour = cheapest_insertion(ctx, [start], cyclic=True)
    return _finish(ctx, tour, "nearest_neighbor_flexible")


def greedy_cycle(ctx: ProblemContext, start: int) -> Result:
    _check_start(ctx, start)
    tour = cheapest_insertion(ctx, _seed_pair(ctx, start), cyclic=True)
    return _finish(ctx, tour, "greedy_cycle")


def regret_insertion(
    ctx: ProblemContext,
    start: int,
    regret_weight: float = 0.5,
    k: int = 2,
    cyclic: bool = False,
    use_candidates: bool = False,
) -> Result:
    """
    Weighted k-regret insertion.

    Each round scores every unused node by
    ``regret_weight * regret - (1 - regret_weight) * best_delta`` where
    ``regret`` sums the gaps between its k best insertion deltas, and
    inserts the top scorer at its cheapest position. ``regret_weight=0``
    is plain cheapest insertion. Path mode grows an open path from the
    start node; cyclic mode starts from the greedy-cycle seed pair.
    """
    _check_start(ctx, start)
    tour = _seed_pair(ctx, start) if cyclic else [start]
    regret_fill(ctx, tour, regret_weight, k=k, cyclic=cyclic, use_candidates=use_candidates)
    return _finish(ctx, tour, "regret_cycle" if cyclic else "regret")


def complete_tour(ctx: ProblemContext, partial: Sequence[int], regret_weight: Optional[float] = None) -> Result:
    """Repair a partial tour back to full size by insertion on cyclic positions."""
    tour = list(partial)
    if not tour:
        raise ValueError("cannot repair an empty tour")
    if regret_weight is None:
        cheapest_insertion(ctx, tour, cyclic=True)
    else:
        regret_fill(ctx, tour, regret_weight, cyclic=True)
    return _finish(ctx, tour, "repair")


STRATEGIES = (
    "random",
    "nearest_neighbor_end",
    "nearest_neighbor_flexible",
    "greedy_cycle",
    "regret",
    "regret_cycle",
    "regret_candidates",
)


class ConstructiveSolver(Solver):
    name = "constructive"

    def __init__(self, strategy: str, start: Optional[int] = None, rng: Optional[random.Random] = None, **params):
        if strategy not in STRATEGIES:
            raise ValueError(f"unknown construction strategy {strategy!r}; choose from {', '.join(STRATEGIES)}")
        self.strategy = strategy
        self.start = start
        self.rng = rng or random.Random()
        self.params = params
        self.name = strategy

    def construct(self, ctx: ProblemContext, start: Optional[int] = None) -> Result:
        if self.strategy == "random":
            return random_tour(ctx, self.rng)
        if start is None:
            start = self.start if self.start is not None else self.rng.randrange(ctx.size)
        if self.strategy == "nearest_neighbor_end":
            return nearest_neighbor_end(ctx, start)
        if self.strategy == "nearest_neighbor_flexible":
            return nearest_neighbor_flexible(ctx, start)
        if self.strategy == "greedy_cycle":
            return greedy_cycle(ctx, start)
        if self.strategy == "regret_cycle":
            return regret_insertion(ctx, start, cyclic=True, **self.params)
        if self.strategy == "regret_candidates":
            return regret_insertion(ctx, start, cyclic=True, use_candidates=True, **self.params)
        return regret_insertion(ctx, start, **self.params)

    def solve(self, ctx: ProblemContext) -> Result:
        return self.construct(ctx)
