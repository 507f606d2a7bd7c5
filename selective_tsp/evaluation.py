import json
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import networkx as nx
import numpy as np

from .solvers.base import ProblemContext, Result, Solver, route_cost


class InvalidTour(ValueError):
    """A result does not describe one closed cycle over ``target_count`` distinct nodes."""


@dataclass
class RunRecord:
    result: Result
    runtime: float
    solver_name: str
    iterations: Optional[int] = None

    @property
    def cost(self) -> float:
        return self.result.total_cost


def evaluate_solver(solver: Solver, ctx: ProblemContext) -> RunRecord:
    start = time.perf_counter()
    result = solver.solve(ctx)
    runtime = time.perf_counter() - start
    return RunRecord(
        result=result,
        runtime=runtime,
        solver_name=solver.name,
        iterations=getattr(solver, "iterations", None),
    )


def tour_graph(route: Sequence[int]) -> nx.MultiGraph:
    # multigraph so the two-node cycle a -> b -> a keeps both edges
    graph = nx.MultiGraph()
    graph.add_nodes_from(route)
    for a, b in zip(route, route[1:]):
        graph.add_edge(a, b)
    return graph


def validate_result(ctx: ProblemContext, result: Result, tolerance: float = 1e-9) -> None:
    route = result.route
    problems: List[str] = []
    if len(route) != ctx.target_count + 1:
        problems.append(f"route has {len(route)} entries, expected {ctx.target_count + 1}")
    if route and route[0] != route[-1]:
        problems.append("route is not closed")
    members = route[:-1]
    if len(set(members)) != len(members):
        problems.append("route visits a node twice")
    if any(not 0 <= node < ctx.size for node in members):
        problems.append("route references a node outside the instance")
    if problems:
        raise InvalidTour("; ".join(problems))

    graph = tour_graph(route)
    if any(deg != 2 for _, deg in graph.degree()) or not nx.is_connected(graph):
        raise InvalidTour("route is not a single cycle")
    recomputed = route_cost(ctx, route)
    if abs(recomputed - result.total_cost) > tolerance:
        raise InvalidTour(f"reported cost {result.total_cost} differs from recomputed {recomputed}")


class SolutionSpace:
    """All results one method produced on one instance."""

    def __init__(self, method: str, instance: str = ""):
        self.method = method
        self.instance = instance
        self.records: List[RunRecord] = []

    def __len__(self) -> int:
        return len(self.records)

    def add(self, record: RunRecord) -> None:
        self.records.append(record)

    def add_result(self, result: Result, runtime: float = 0.0, iterations: Optional[int] = None) -> None:
        self.records.append(RunRecord(result, runtime, result.solver_name or self.method, iterations))

    def costs(self) -> np.ndarray:
        return np.array([r.cost for r in self.records], dtype=np.float64)

    def best(self) -> Result:
        if not self.records:
            raise ValueError(f"no results recorded for {self.method}")
        return min(self.records, key=lambda r: r.cost).result

    def stats(self) -> Dict[str, float]:
        if not self.records:
            nan = float("nan")
            return {"min": nan, "max": nan, "avg": nan, "sd": nan}
        costs = self.costs()
        return {
            "min": float(costs.min()),
            "max": float(costs.max()),
            "avg": float(costs.mean()),
            "sd": float(costs.std()),
        }

    def average_runtime(self) -> float:
        if not self.records:
            return 0.0
        return float(np.mean([r.runtime for r in self.records]))

    def average_iterations(self) -> Optional[float]:
        counts = [r.iterations for r in self.records if r.iterations is not None]
        if not counts:
            return None
        return float(np.mean(counts))

    def stats_row(self) -> Dict[str, object]:
        row: Dict[str, object] = {"instance": self.instance, "method": self.method}
        row.update({k: round(v, 2) for k, v in self.stats().items()})
        row["runs"] = len(self.records)
        row["avg_runtime"] = round(self.average_runtime(), 4)
        iterations = self.average_iterations()
        if iterations is not None:
            row["avg_iterations"] = round(iterations, 2)
        return row

    def to_dict(self) -> Dict[str, object]:
        out = self.stats_row()
        if self.records:
            best = self.best()
            out["best_route"] = best.route
            out["best_cost"] = best.total_cost
        return out

    def save_json(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))


def summarize(spaces: Sequence[SolutionSpace]) -> List[Dict[str, object]]:
    rows = [space.stats_row() for space in spaces]
    rows.sort(key=lambda r: (r["instance"], math.inf if math.isnan(r["avg"]) else r["avg"]))
    return rows
