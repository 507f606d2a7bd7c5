from .base import (
    InfeasibleConstruction,
    Improver,
    ProblemContext,
    Result,
    Solver,
    Tour,
    close_route,
    open_route,
    route_cost,
)
from .construction import (
    STRATEGIES,
    ConstructiveSolver,
    complete_tour,
    greedy_cycle,
    nearest_neighbor_end,
    nearest_neighbor_flexible,
    random_tour,
    regret_insertion,
)
from .local_search import LocalSearch, LocalSearchConfig
from .metaheuristics import (
    CompositionSolver,
    ILSConfig,
    IteratedLocalSearch,
    LargeNeighborhoodSearch,
    LNSConfig,
    MSLSConfig,
    MultiStartLocalSearch,
)
from .move_list import MoveListSearch

__all__ = [
    "InfeasibleConstruction",
    "Improver",
    "ProblemContext",
    "Result",
    "Solver",
    "Tour",
    "close_route",
    "open_route",
    "route_cost",
    "STRATEGIES",
    "ConstructiveSolver",
    "complete_tour",
    "greedy_cycle",
    "nearest_neighbor_end",
    "nearest_neighbor_flexible",
    "random_tour",
    "regret_insertion",
    "LocalSearch",
    "LocalSearchConfig",
    "CompositionSolver",
    "ILSConfig",
    "IteratedLocalSearch",
    "LargeNeighborhoodSearch",
    "LNSConfig",
    "MSLSConfig",
    "MultiStartLocalSearch",
    "MoveListSearch",
]
