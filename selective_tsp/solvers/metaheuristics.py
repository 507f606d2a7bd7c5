import logging
import random
import time
from dataclasses import dataclass, field
from typing import Optional

from .base import Improver, ProblemContext, Result, Solver, Tour, open_route, reverse_segment
from .construction import ConstructiveSolver, complete_tour, random_tour
from .local_search import LocalSearch, LocalSearchConfig, unselected_nodes


logger = logging.getLogger(__name__)


class CompositionSolver(Solver):
    """Construct a tour, then hand it to an improver."""

    name = "composition"

    def __init__(self, constructor: ConstructiveSolver, improver: Optional[Improver] = None):
        self.constructor = constructor
        self.improver = improver
        self.name = constructor.name if improver is None else f"{constructor.name}+{improver.name}"

    def solve(self, ctx: ProblemContext) -> Result:
        base = self.constructor.solve(ctx)
        if self.improver is None:
            return base
        return self.improver.improve(ctx, base.route)


@dataclass
class MetaheuristicConfig:
    local_search: LocalSearchConfig = field(default_factory=LocalSearchConfig)
    random_seed: Optional[int] = None


@dataclass
class MSLSConfig(MetaheuristicConfig):
    iterations: int = 200


@dataclass
class TimedConfig(MetaheuristicConfig):
    time_limit: float = 1.0
    max_iterations: Optional[int] = None


@dataclass
class ILSConfig(TimedConfig):
    reversals: int = 2
    swaps: int = 2


@dataclass
class LNSConfig(TimedConfig):
    destroy_fraction: float = 0.3
    use_local_search: bool = True
    repair_regret_weight: Optional[float] = None

    def __post_init__(self):
        if not 0.0 < self.destroy_fraction < 1.0:
            raise ValueError(f"destroy fraction must lie in (0, 1), got {self.destroy_fraction}")


class _Metaheuristic(Solver):
    def __init__(self, config: MetaheuristicConfig, rng: Optional[random.Random] = None):
        self.cfg = config
        self.rng = rng or random.Random(config.random_seed)
        self.local_search = LocalSearch(config.local_search, rng=self.rng)
        self.iterations = 0

    def _budget_left(self, started: float) -> bool:
        # polled between iterations; a started iteration always completes
        if self.cfg.max_iterations is not None and self.iterations >= self.cfg.max_iterations:
            return False
        return time.perf_counter() - started < self.cfg.time_limit


class MultiStartLocalSearch(_Metaheuristic):
    name = "msls"

    def __init__(self, config: Optional[MSLSConfig] = None, rng: Optional[random.Random] = None):
        config = config or MSLSConfig()
        if config.iterations < 1:
            raise ValueError("MSLS needs at least one iteration")
        super().__init__(config, rng)

    def solve(self, ctx: ProblemContext) -> Result:
        best: Optional[Result] = None
        self.iterations = 0
        for _ in range(self.cfg.iterations):
            start = random_tour(ctx, self.rng)
            current = self.local_search.improve(ctx, start.route)
            self.iterations += 1
            if best is None or current.total_cost < best.total_cost:
                best = current
        best.solver_name = self.name
        return best


def perturb(ctx: ProblemContext, tour: Tour, rng: random.Random, reversals: int = 2, swaps: int = 2) -> Tour:
    """
    Random kick for ILS: ``reversals`` non-overlapping segment reversals,
    then up to ``swaps`` exchanges of a tour node with an unselected node.
    Works on a copy.
    """
    tour = list(tour)
    n = len(tour)
    if n >= 2 * reversals and reversals > 0:
        cuts = sorted(rng.sample(range(n), 2 * reversals))
        for k in range(reversals):
            lo, hi = cuts[2 * k], cuts[2 * k + 1]
            reverse_segment(tour, lo + 1, hi)
    outside = unselected_nodes(ctx, tour)
    for _ in range(min(swaps, len(outside))):
        idx = rng.randrange(n)
        pool_idx = rng.randrange(len(outside))
        tour[idx], outside[pool_idx] = outside[pool_idx], tour[idx]
    return tour


class IteratedLocalSearch(_Metaheuristic):
    name = "ils"

    def __init__(self, config: Optional[ILSConfig] = None, rng: Optional[random.Random] = None):
        super().__init__(config or ILSConfig(), rng)

    def solve(self, ctx: ProblemContext) -> Result:
        started = time.perf_counter()
        self.iterations = 0
        current = self.local_search.improve(ctx, random_tour(ctx, self.rng).route)
        best = current
        while self._budget_left(started):
            kicked = perturb(ctx, open_route(current.route), self.rng, self.cfg.reversals, self.cfg.swaps)
            candidate = self.local_search.improve(ctx, kicked)
            self.iterations += 1
            if candidate.total_cost < current.total_cost:
                current = candidate
                logger.debug("ils iteration %d accepted cost %.1f", self.iterations, current.total_cost)
                if current.total_cost < best.total_cost:
                    best = current
        best.solver_name = self.name
        return best


def destroy(tour: Tour, fraction: float, rng: random.Random) -> Tour:
    """Remove a random ``fraction`` of the tour, at least one node, never all of them."""
    tour = list(tour)
    count = min(max(1, int(fraction * len(tour))), len(tour) - 1)
    for _ in range(count):
        tour.pop(rng.randrange(len(tour)))
    return tour


class LargeNeighborhoodSearch(_Metaheuristic):
    name = "lns"

    def __init__(self, config: Optional[LNSConfig] = None, rng: Optional[random.Random] = None):
        super().__init__(config or LNSConfig(), rng)

    def repair(self, ctx: ProblemContext, partial: Tour) -> Result:
        return complete_tour(ctx, partial, regret_weight=self.cfg.repair_regret_weight)

    def solve(self, ctx: ProblemContext) -> Result:
        started = time.perf_counter()
        self.iterations = 0
        current = random_tour(ctx, self.rng)
        if self.cfg.use_local_search:
            current = self.local_search.improve(ctx, current.route)
        best = current
        while self._budget_left(started):
            partial = destroy(open_route(current.route), self.cfg.destroy_fraction, self.rng)
            candidate = self.repair(ctx, partial)
            if self.cfg.use_local_search:
                candidate = self.local_search.improve(ctx, candidate.route)
            self.iterations += 1
            if candidate.total_cost < current.total_cost:
                current = candidate
                logger.debug("lns iteration %d accepted cost %.1f", self.iterations, current.total_cost)
                if current.total_cost < best.total_cost:
                    best = current
        best.solver_name = self.name
        return best
