import random

import pytest

from selective_tsp.solvers.base import close_route, route_cost
from selective_tsp.solvers.construction import random_tour
from selective_tsp.solvers.local_search import LocalSearch, LocalSearchConfig
from selective_tsp.solvers.move_list import Check, EdgeMove, ExchangeMove, MoveListSearch

from conftest import edge_set, make_ctx, random_points


BASELINE = LocalSearchConfig(steepest=True, node_swap=False)
MOVE_LIST = LocalSearchConfig(use_move_list=True)


def successors(tour):
    return {tour[i]: tour[(i + 1) % len(tour)] for i in range(len(tour))}


class TestEdgeMoveCheck:
    tour = [0, 1, 2, 3, 4, 5]

    def test_forward_edges_apply(self):
        assert EdgeMove(0, 1, 3, 4, -1).check(successors(self.tour), set()) is Check.APPLY

    def test_both_edges_reversed_apply(self):
        assert EdgeMove(1, 0, 4, 3, -1).check(successors(self.tour), set()) is Check.APPLY_REVERSED

    def test_mixed_orientation_is_kept(self):
        assert EdgeMove(0, 1, 4, 3, -1).check(successors(self.tour), set()) is Check.KEEP

    def test_missing_edge_is_dropped(self):
        assert EdgeMove(0, 2, 3, 4, -1).check(successors(self.tour), set()) is Check.DROP

    @pytest.mark.parametrize(
        "move, check, added",
        [
            (EdgeMove(0, 1, 3, 4, -1), Check.APPLY, [(0, 3), (1, 4)]),
            (EdgeMove(1, 0, 4, 3, -1), Check.APPLY_REVERSED, [(1, 4), (0, 3)]),
        ],
    )
    def test_apply_replaces_exactly_two_edges(self, move, check, added):
        tour = list(self.tour)
        move.apply(tour, set(), check)
        before = edge_set(close_route(self.tour))
        after = edge_set(close_route(tour))
        assert sorted(tour) == sorted(self.tour)
        assert before - after == {frozenset((0, 1)), frozenset((3, 4))}
        assert after - before == {frozenset(pair) for pair in added}


class TestExchangeMoveCheck:
    tour = [0, 1, 2, 3]

    def test_candidate_already_selected_is_dropped(self):
        move = ExchangeMove(0, 1, 2, 3, -1)
        assert move.check(successors(self.tour), {7}) is Check.DROP

    def test_neighbours_in_either_direction_apply(self):
        succ = successors(self.tour)
        assert ExchangeMove(0, 1, 2, 7, -1).check(succ, {7}) is Check.APPLY
        assert ExchangeMove(2, 1, 0, 7, -1).check(succ, {7}) is Check.APPLY_REVERSED

    def test_broken_neighbourhood_is_dropped(self):
        assert ExchangeMove(3, 1, 2, 7, -1).check(successors(self.tour), {7}) is Check.DROP

    def test_apply_swaps_membership(self):
        tour = list(self.tour)
        outside = {7}
        ExchangeMove(0, 1, 2, 7, -1).apply(tour, outside, Check.APPLY)
        assert tour == [0, 7, 2, 3]
        assert outside == {1}


@pytest.mark.parametrize("seed", range(5))
def test_same_cost_as_baseline_on_unique_optimum(decoy_ctx, seed):
    start = random_tour(decoy_ctx, random.Random(seed)).route
    baseline = LocalSearch(BASELINE).improve(decoy_ctx, start)
    listed = LocalSearch(MOVE_LIST).improve(decoy_ctx, start)
    assert baseline.total_cost == listed.total_cost == 40


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_move_list_result_is_a_baseline_local_optimum(seed):
    ctx = make_ctx(random_points(60, seed=seed))
    start = random_tour(ctx, random.Random(seed)).route
    listed = LocalSearch(MOVE_LIST).improve(ctx, start)
    assert listed.total_cost == pytest.approx(route_cost(ctx, listed.route), abs=1e-9)
    polished = LocalSearch(BASELINE).improve(ctx, listed.route)
    assert polished.route == listed.route


def test_search_counts_work(random_ctx):
    tour = random_tour(random_ctx, random.Random(4)).tour
    search = MoveListSearch(random_ctx, tour)
    start_cost = route_cost(random_ctx, close_route(tour))
    final_cost = search.run(start_cost)
    assert final_cost < start_cost
    assert search.iterations > 0
    assert search.repopulations >= 1
    assert search.moves == []
    assert final_cost == pytest.approx(route_cost(random_ctx, close_route(search.tour)))
