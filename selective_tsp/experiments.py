import copy
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .data import Instance
from .evaluation import SolutionSpace, evaluate_solver, validate_result
from .solvers.base import ProblemContext, Solver
from .solvers.construction import STRATEGIES, ConstructiveSolver, random_tour
from .solvers.local_search import LocalSearch, LocalSearchConfig
from .solvers.metaheuristics import (
    ILSConfig,
    IteratedLocalSearch,
    LargeNeighborhoodSearch,
    LNSConfig,
    MSLSConfig,
    MultiStartLocalSearch,
)


logger = logging.getLogger(__name__)

DEFAULT_LOCAL_SEARCH_VARIANTS = (
    LocalSearchConfig(steepest=True, node_swap=True),
    LocalSearchConfig(steepest=True, node_swap=False),
    LocalSearchConfig(steepest=False, node_swap=True),
    LocalSearchConfig(steepest=False, node_swap=False),
    LocalSearchConfig(steepest=True, use_candidates=True),
    LocalSearchConfig(steepest=True, use_move_list=True),
)


@dataclass
class ExperimentConfig:
    runs: int = 20
    msls_iterations: int = 200
    random_seed: int = 123
    candidate_count: int = 10
    constructions: Tuple[str, ...] = STRATEGIES
    start_nodes: Optional[int] = None
    local_search: LocalSearchConfig = field(default_factory=LocalSearchConfig)
    local_search_variants: Tuple[LocalSearchConfig, ...] = DEFAULT_LOCAL_SEARCH_VARIANTS
    destroy_fraction: float = 0.3
    validate: bool = True

    def __post_init__(self):
        if self.runs < 1:
            raise ValueError("an experiment needs at least one run")
        unknown = [s for s in self.constructions if s not in STRATEGIES]
        if unknown:
            raise ValueError(f"unknown construction strategies: {', '.join(unknown)}")


Progress = Callable[[str], None]

PARTS = ("constructions", "local_searches", "metaheuristics")


class Experiment:
    """
    Runs every compared method on one instance and collects a
    :class:`SolutionSpace` per method.
    """

    def __init__(self, instance: Instance, config: Optional[ExperimentConfig] = None, progress: Optional[Progress] = None):
        self.instance = instance
        self.cfg = config or ExperimentConfig()
        self.ctx = ProblemContext.from_instance(instance, candidate_count=self.cfg.candidate_count)
        self.rng = random.Random(self.cfg.random_seed)
        self.progress = progress or logger.info
        self.spaces: List[SolutionSpace] = []

    def _space(self, method: str) -> SolutionSpace:
        space = SolutionSpace(method, self.instance.name)
        self.spaces.append(space)
        return space

    def _record(self, space: SolutionSpace, solver: Solver) -> None:
        record = evaluate_solver(solver, self.ctx)
        if self.cfg.validate:
            validate_result(self.ctx, record.result)
        space.add(record)

    def _start_nodes(self) -> Sequence[int]:
        starts = range(self.ctx.size)
        if self.cfg.start_nodes is not None and self.cfg.start_nodes < self.ctx.size:
            return sorted(self.rng.sample(starts, self.cfg.start_nodes))
        return starts

    def constructions(self) -> List[SolutionSpace]:
        spaces = []
        for strategy in self.cfg.constructions:
            space = self._space(strategy)
            if strategy == "random":
                solver = ConstructiveSolver(strategy, rng=self.rng)
                for _ in range(self.cfg.runs):
                    self._record(space, solver)
            else:
                for start in self._start_nodes():
                    self._record(space, ConstructiveSolver(strategy, start=start))
            self.progress(f"{self.instance.name} {strategy}: {space.stats_row()}")
            spaces.append(space)
        return spaces

    def local_searches(self) -> List[SolutionSpace]:
        """Every local-search variant from the same random starting tours."""
        starts = [random_tour(self.ctx, self.rng).route for _ in range(self.cfg.runs)]
        spaces = []
        for variant in self.cfg.local_search_variants:
            search = LocalSearch(variant, rng=self.rng)
            space = self._space(search.name)
            for route in starts:
                self._record(space, _FixedStart(search, route))
            self.progress(f"{self.instance.name} {search.name}: {space.stats_row()}")
            spaces.append(space)
        return spaces

    def metaheuristics(self) -> List[SolutionSpace]:
        """MSLS first; its mean runtime becomes the time budget of ILS and LNS."""
        ls_cfg = copy.deepcopy(self.cfg.local_search)
        msls = self._space("msls")
        for _ in range(self.cfg.runs):
            solver = MultiStartLocalSearch(
                MSLSConfig(local_search=ls_cfg, iterations=self.cfg.msls_iterations), rng=self.rng
            )
            self._record(msls, solver)
        budget = msls.average_runtime()
        self.progress(f"{self.instance.name} msls: {msls.stats_row()} (time budget {budget:.3f}s)")

        spaces = [msls]
        variants = [
            ("ils", lambda: IteratedLocalSearch(ILSConfig(local_search=ls_cfg, time_limit=budget), rng=self.rng)),
            (
                "lns",
                lambda: LargeNeighborhoodSearch(
                    LNSConfig(local_search=ls_cfg, time_limit=budget, destroy_fraction=self.cfg.destroy_fraction),
                    rng=self.rng,
                ),
            ),
            (
                "lns_no_ls",
                lambda: LargeNeighborhoodSearch(
                    LNSConfig(
                        local_search=ls_cfg,
                        time_limit=budget,
                        destroy_fraction=self.cfg.destroy_fraction,
                        use_local_search=False,
                    ),
                    rng=self.rng,
                ),
            ),
        ]
        for method, factory in variants:
            space = self._space(method)
            for _ in range(self.cfg.runs):
                self._record(space, factory())
            self.progress(f"{self.instance.name} {method}: {space.stats_row()}")
            spaces.append(space)
        return spaces

    def run(self, parts: Sequence[str] = PARTS) -> List[SolutionSpace]:
        for part in parts:
            getattr(self, part)()
        return self.spaces


class _FixedStart(Solver):
    """Adapts an improver to the solver interface by fixing its starting route."""

    def __init__(self, improver: LocalSearch, route):
        self.improver = improver
        self.route = route
        self.name = improver.name

    def solve(self, ctx: ProblemContext):
        result = self.improver.improve(ctx, self.route)
        self.iterations = self.improver.iterations
        return result


def run_experiments(
    instances: Sequence[Instance],
    config: Optional[ExperimentConfig] = None,
    parts: Sequence[str] = PARTS,
    progress: Optional[Progress] = None,
) -> List[SolutionSpace]:
    if not instances:
        raise RuntimeError("no instances to run experiments on")
    unknown = [p for p in parts if p not in PARTS]
    if unknown:
        raise ValueError(f"unknown experiment parts: {', '.join(unknown)}")
    spaces: List[SolutionSpace] = []
    for instance in instances:
        spaces.extend(Experiment(instance, config, progress).run(parts))
    return spaces
