import random

import pytest

from selective_tsp.solvers.base import InfeasibleConstruction, route_cost
from selective_tsp.solvers.construction import (
    STRATEGIES,
    ConstructiveSolver,
    complete_tour,
    greedy_cycle,
    insertion_deltas,
    nearest_neighbor_end,
    nearest_neighbor_flexible,
    regret_insertion,
)

from conftest import make_ctx, random_points


def assert_valid(ctx, result):
    route = result.route
    assert len(route) == ctx.target_count + 1
    assert route[0] == route[-1]
    assert len(set(route[:-1])) == ctx.target_count
    assert result.total_cost == pytest.approx(route_cost(ctx, route), abs=1e-9)


@pytest.mark.parametrize("strategy", STRATEGIES)
@pytest.mark.parametrize("start", [0, 17, 39])
def test_every_strategy_builds_a_full_closed_tour(random_ctx, strategy, start):
    solver = ConstructiveSolver(strategy, start=start, rng=random.Random(start))
    result = solver.solve(random_ctx)
    assert_valid(random_ctx, result)
    if strategy != "random":
        assert start in result.route


def test_nearest_neighbor_on_square_prefers_lowest_index(square_ctx):
    result = nearest_neighbor_end(square_ctx, 0)
    assert result.route == [0, 1, 0]
    assert result.total_cost == 20


def test_flexible_nearest_neighbor_on_square(square_ctx):
    result = nearest_neighbor_flexible(square_ctx, 0)
    assert result.route == [0, 1, 0]
    assert result.total_cost == 20


def test_greedy_cycle_seed_pair_uses_costs():
    # node 1 is closest to node 0 but expensive; node 2 wins the seed pair
    ctx = make_ctx([(0, 0, 0), (5, 0, 100), (20, 0, 0), (500, 500, 0)])
    assert greedy_cycle(ctx, 0).route == [0, 2, 0]


@pytest.mark.parametrize("start", range(0, 40, 7))
def test_regret_with_zero_weight_is_cheapest_insertion(random_ctx, start):
    regret = regret_insertion(random_ctx, start, regret_weight=0.0, cyclic=True)
    greedy = greedy_cycle(random_ctx, start)
    assert regret.route == greedy.route
    assert regret.total_cost == greedy.total_cost


def test_regret_weight_changes_the_tour(random_ctx):
    tours = {tuple(regret_insertion(random_ctx, 0, regret_weight=w, cyclic=True).route) for w in (0.0, 0.5, 1.0)}
    assert len(tours) > 1


def test_path_insertion_positions_include_both_ends(square_ctx):
    deltas = insertion_deltas(square_ctx, [0, 1], 3, cyclic=False)
    assert [ins.position for ins in deltas] == [0, 1, 2]
    # before 0: d(3,0); between 0 and 1: d(0,3)+d(3,1)-d(0,1); after 1: d(1,3)
    assert [ins.delta for ins in deltas] == [10, 10 + 14 - 10, 14]


def test_candidate_regret_falls_back_when_candidates_run_out():
    ctx = make_ctx(random_points(30, seed=5), candidate_count=1)
    result = regret_insertion(ctx, 0, cyclic=True, use_candidates=True)
    assert_valid(ctx, result)


@pytest.mark.parametrize("weight", [-0.1, 1.5])
def test_regret_weight_out_of_range(random_ctx, weight):
    with pytest.raises(ValueError):
        regret_insertion(random_ctx, 0, regret_weight=weight)


def test_invalid_start_node(random_ctx):
    with pytest.raises(IndexError):
        greedy_cycle(random_ctx, random_ctx.size)


def test_unknown_strategy():
    with pytest.raises(ValueError, match="unknown construction strategy"):
        ConstructiveSolver("farthest_insertion")


def test_running_out_of_nodes_reports_partial_tour(square_ctx):
    square_ctx.target_count = square_ctx.size + 1
    with pytest.raises(InfeasibleConstruction) as excinfo:
        nearest_neighbor_end(square_ctx, 0)
    partial = excinfo.value.result
    assert len(partial.tour) == square_ctx.size
    assert partial.route[0] == partial.route[-1]


class TestCompleteTour:
    def test_keeps_partial_nodes(self, random_ctx):
        partial = [3, 9, 27]
        result = complete_tour(random_ctx, partial)
        assert_valid(random_ctx, result)
        assert set(partial) <= set(result.route)

    def test_regret_repair(self, random_ctx):
        result = complete_tour(random_ctx, [3, 9, 27], regret_weight=0.5)
        assert_valid(random_ctx, result)

    def test_empty_partial_is_rejected(self, random_ctx):
        with pytest.raises(ValueError):
            complete_tour(random_ctx, [])
