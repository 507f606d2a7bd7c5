import random

import pytest

from selective_tsp.solvers.base import route_cost
from selective_tsp.solvers.construction import ConstructiveSolver, greedy_cycle, random_tour
from selective_tsp.solvers.local_search import LocalSearch, LocalSearchConfig
from selective_tsp.solvers.metaheuristics import (
    CompositionSolver,
    ILSConfig,
    IteratedLocalSearch,
    LargeNeighborhoodSearch,
    LNSConfig,
    MSLSConfig,
    MultiStartLocalSearch,
    destroy,
    perturb,
)


def first_local_optimum(ctx, seed, config=None):
    rng = random.Random(seed)
    start = random_tour(ctx, rng)
    return LocalSearch(config or LocalSearchConfig(), rng=rng).improve(ctx, start.route)


def assert_valid(ctx, result):
    assert len(result.route) == ctx.target_count + 1
    assert result.route[0] == result.route[-1]
    assert len(set(result.tour)) == ctx.target_count
    assert result.total_cost == pytest.approx(route_cost(ctx, result.route), abs=1e-9)


class TestMultiStart:
    def test_single_iteration_is_one_construction_plus_local_search(self, random_ctx):
        expected = first_local_optimum(random_ctx, seed=7)
        msls = MultiStartLocalSearch(MSLSConfig(iterations=1), rng=random.Random(7))
        result = msls.solve(random_ctx)
        assert result.route == expected.route
        assert result.total_cost == expected.total_cost
        assert result.solver_name == "msls"

    def test_keeps_the_best_restart(self, random_ctx):
        single = MultiStartLocalSearch(MSLSConfig(iterations=1), rng=random.Random(3)).solve(random_ctx)
        many = MultiStartLocalSearch(MSLSConfig(iterations=10), rng=random.Random(3)).solve(random_ctx)
        assert many.total_cost <= single.total_cost
        assert_valid(random_ctx, many)

    def test_seed_from_config(self, random_ctx):
        a = MultiStartLocalSearch(MSLSConfig(iterations=3, random_seed=5)).solve(random_ctx)
        b = MultiStartLocalSearch(MSLSConfig(iterations=3, random_seed=5)).solve(random_ctx)
        assert a == b

    def test_needs_an_iteration(self):
        with pytest.raises(ValueError):
            MultiStartLocalSearch(MSLSConfig(iterations=0))


class TestIteratedLocalSearch:
    def test_iteration_cap_and_improvement(self, random_ctx):
        ils = IteratedLocalSearch(ILSConfig(time_limit=60.0, max_iterations=8), rng=random.Random(2))
        result = ils.solve(random_ctx)
        assert ils.iterations == 8
        assert_valid(random_ctx, result)
        assert result.total_cost <= first_local_optimum(random_ctx, seed=2).total_cost

    def test_time_budget_stops_search(self, random_ctx):
        ils = IteratedLocalSearch(ILSConfig(time_limit=0.0), rng=random.Random(2))
        result = ils.solve(random_ctx)
        assert ils.iterations == 0
        assert result == first_local_optimum(random_ctx, seed=2)

    def test_perturb_keeps_a_valid_tour(self, random_ctx):
        tour = random_tour(random_ctx, random.Random(1)).tour
        kicked = perturb(random_ctx, tour, random.Random(8))
        assert len(kicked) == len(tour)
        assert len(set(kicked)) == len(kicked)
        assert kicked != tour
        assert tour == random_tour(random_ctx, random.Random(1)).tour


class TestLargeNeighborhoodSearch:
    @pytest.mark.parametrize("use_local_search", [True, False])
    @pytest.mark.parametrize("regret_weight", [None, 0.5])
    def test_iteration_cap(self, random_ctx, use_local_search, regret_weight):
        cfg = LNSConfig(
            time_limit=60.0,
            max_iterations=6,
            use_local_search=use_local_search,
            repair_regret_weight=regret_weight,
        )
        lns = LargeNeighborhoodSearch(cfg, rng=random.Random(4))
        result = lns.solve(random_ctx)
        assert lns.iterations == 6
        assert_valid(random_ctx, result)

    def test_never_worse_than_its_start(self, random_ctx):
        lns = LargeNeighborhoodSearch(LNSConfig(time_limit=60.0, max_iterations=10), rng=random.Random(6))
        assert lns.solve(random_ctx).total_cost <= first_local_optimum(random_ctx, seed=6).total_cost

    @pytest.mark.parametrize("fraction", [0.0, 1.0])
    def test_destroy_fraction_bounds(self, fraction):
        with pytest.raises(ValueError):
            LNSConfig(destroy_fraction=fraction)

    @pytest.mark.parametrize("size, fraction, removed", [(20, 0.3, 6), (3, 0.3, 1), (2, 0.9, 1)])
    def test_destroy_removes_at_least_one_and_keeps_one(self, size, fraction, removed):
        tour = list(range(size))
        kept = destroy(tour, fraction, random.Random(0))
        assert len(kept) == size - removed
        assert set(kept) <= set(tour)
        assert tour == list(range(size))


def test_composition_improves_construction(random_ctx):
    solver = CompositionSolver(ConstructiveSolver("greedy_cycle", start=0), LocalSearch(LocalSearchConfig()))
    result = solver.solve(random_ctx)
    assert solver.name == "greedy_cycle+ls_steepest_edge"
    assert result.total_cost <= greedy_cycle(random_ctx, 0).total_cost
    assert_valid(random_ctx, result)
