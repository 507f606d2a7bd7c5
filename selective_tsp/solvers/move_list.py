"""
Steepest local search with a list of improving moves (LM).

Moves are stored by the node identities of the edges they remove rather
than by tour positions, so they survive unrelated changes to the tour.
Before a stored move is used it is checked against the current successor
relation:

* its edges are gone, or the node it would bring in is already in the
  tour: the move is dropped;
* the edges exist but point in different directions: applying it would
  split the tour, so it stays in the list for later;
* the edges exist in the stored or the fully reversed direction: the move
  is applied.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

from .base import IMPROVEMENT_EPS, ProblemContext, Tour, reverse_segment
from .local_search import exchange_delta, two_opt_delta


logger = logging.getLogger(__name__)


class Check(enum.Enum):
    DROP = "drop"
    KEEP = "keep"
    APPLY = "apply"
    APPLY_REVERSED = "apply_reversed"


def _has_edge(succ: Dict[int, int], u: int, v: int) -> bool:
    return succ.get(u) == v


@dataclass
class EdgeMove:
    """2-opt removing ``a -> b`` and ``c -> d`` and adding ``(a, c)`` and ``(b, d)``."""

    a: int
    b: int
    c: int
    d: int
    delta: float = field(compare=False)

    @property
    def nodes(self) -> Tuple[int, int, int, int]:
        return (self.a, self.b, self.c, self.d)

    @property
    def key(self) -> FrozenSet[Tuple[int, int]]:
        return frozenset(((self.a, self.b), (self.c, self.d)))

    def check(self, succ: Dict[int, int], outside: Set[int]) -> Check:
        forward_ab = _has_edge(succ, self.a, self.b)
        backward_ab = _has_edge(succ, self.b, self.a)
        forward_cd = _has_edge(succ, self.c, self.d)
        backward_cd = _has_edge(succ, self.d, self.c)
        if not (forward_ab or backward_ab) or not (forward_cd or backward_cd):
            return Check.DROP
        if forward_ab and forward_cd:
            return Check.APPLY
        if backward_ab and backward_cd:
            return Check.APPLY_REVERSED
        return Check.KEEP

    def apply(self, tour: Tour, outside: Set[int], check: Check) -> None:
        position = {node: i for i, node in enumerate(tour)}
        if check is Check.APPLY:
            # a -> [b ... c] -> d
            reverse_segment(tour, position[self.b], position[self.c])
        else:
            # d -> [c ... b] -> a
            reverse_segment(tour, position[self.c], position[self.b])


@dataclass
class ExchangeMove:
    """Replace ``selected`` (between ``prev`` and ``next``) by the unselected ``candidate``."""

    prev: int
    selected: int
    next: int
    candidate: int
    delta: float = field(compare=False)

    @property
    def nodes(self) -> Tuple[int, int, int, int]:
        return (self.prev, self.selected, self.next, self.candidate)

    @property
    def key(self) -> Tuple[int, int, int, int]:
        return self.nodes

    def check(self, succ: Dict[int, int], outside: Set[int]) -> Check:
        if self.candidate not in outside:
            return Check.DROP
        p, s, n = self.prev, self.selected, self.next
        left = _has_edge(succ, p, s) or _has_edge(succ, s, p)
        right = _has_edge(succ, s, n) or _has_edge(succ, n, s)
        if not (left and right):
            return Check.DROP
        if _has_edge(succ, p, s) and _has_edge(succ, s, n):
            return Check.APPLY
        if _has_edge(succ, n, s) and _has_edge(succ, s, p):
            return Check.APPLY_REVERSED
        return Check.KEEP

    def apply(self, tour: Tour, outside: Set[int], check: Check) -> None:
        tour[tour.index(self.selected)] = self.candidate
        outside.discard(self.candidate)
        outside.add(self.selected)


ListedMove = Union[EdgeMove, ExchangeMove]


class MoveListSearch:
    """
    Runs one steepest descent over ``tour`` (open form, modified in place)
    with the 2-opt + exchange neighborhood.
    """

    def __init__(self, ctx: ProblemContext, tour: Tour):
        self.ctx = ctx
        self.tour = tour
        selected = set(tour)
        self.outside: Set[int] = {node for node in range(ctx.size) if node not in selected}
        self.moves: List[ListedMove] = []
        self.iterations = 0
        self.repopulations = 0

    def run(self, cost: float) -> float:
        fresh = False
        while True:
            if not self.moves:
                self.populate()
                fresh = True
                if not self.moves:
                    return cost
            applied = self.step()
            if applied is None:
                if fresh:
                    # a freshly built list always holds an applicable move
                    raise RuntimeError("move list built from the current tour had no applicable move")
                self.moves.clear()
                continue
            fresh = False
            cost += applied.delta
            self.iterations += 1

    def populate(self) -> None:
        tour = self.tour
        n = len(tour)
        self.moves = []
        self.repopulations += 1
        for i in range(n):
            self._add_exchanges(i, self.outside)
        for i in range(n - 2):
            for j in range(i + 2, n):
                if i == 0 and j == n - 1:
                    continue
                self._add_edge_move(i, j)
        self.moves.sort(key=lambda m: m.delta)
        logger.debug("move list populated with %d improving moves", len(self.moves))

    def step(self) -> Optional[ListedMove]:
        tour = self.tour
        n = len(tour)
        succ = {tour[i]: tour[(i + 1) % n] for i in range(n)}
        self.moves.sort(key=lambda m: m.delta)
        kept: List[ListedMove] = []
        for idx, move in enumerate(self.moves):
            check = move.check(succ, self.outside)
            if check is Check.DROP:
                continue
            if check is Check.KEEP:
                kept.append(move)
                continue
            move.apply(tour, self.outside, check)
            changed = set(move.nodes)
            remaining = kept + self.moves[idx + 1 :]
            self.moves = [m for m in remaining if changed.isdisjoint(m.nodes)]
            self._refresh(changed, move)
            return move
        self.moves = kept
        return None

    def _refresh(self, changed: Set[int], applied: ListedMove) -> None:
        tour = self.tour
        n = len(tour)
        position = {node: i for i, node in enumerate(tour)}
        seen = {m.key for m in self.moves}

        exchange_positions: Set[int] = set()
        edge_starts: Set[int] = set()
        for node in changed:
            i = position.get(node)
            if i is None:
                continue
            exchange_positions.update(((i - 1) % n, i, (i + 1) % n))
            edge_starts.update(((i - 1) % n, i))

        for i in sorted(exchange_positions):
            self._add_exchanges(i, self.outside, seen)
        if isinstance(applied, ExchangeMove):
            released = {applied.selected}
            for i in range(n):
                self._add_exchanges(i, released, seen)
        for i in sorted(edge_starts):
            for j in range(n):
                lo, hi = min(i, j), max(i, j)
                if hi - lo < 2 or (lo == 0 and hi == n - 1):
                    continue
                self._add_edge_move(lo, hi, seen)

    def _add_exchanges(self, i: int, pool: Set[int], seen: Optional[set] = None) -> None:
        tour = self.tour
        n = len(tour)
        for node in pool:
            delta = exchange_delta(self.ctx, tour, i, node)
            if delta < -IMPROVEMENT_EPS:
                self._push(ExchangeMove(tour[(i - 1) % n], tour[i], tour[(i + 1) % n], node, delta), seen)

    def _add_edge_move(self, i: int, j: int, seen: Optional[set] = None) -> None:
        tour = self.tour
        n = len(tour)
        delta = two_opt_delta(self.ctx, tour, i, j)
        if delta < -IMPROVEMENT_EPS:
            self._push(EdgeMove(tour[i], tour[(i + 1) % n], tour[j], tour[(j + 1) % n], delta), seen)

    def _push(self, move: ListedMove, seen: Optional[set]) -> None:
        if seen is not None:
            if move.key in seen:
                return
            seen.add(move.key)
        self.moves.append(move)
