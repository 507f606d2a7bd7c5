import random

import pytest

from selective_tsp.data import instance_from_points
from selective_tsp.solvers.base import ProblemContext


SQUARE = [(0, 0, 0), (0, 10, 0), (10, 10, 0), (10, 0, 0)]

# Four free corners of a square plus four far, expensive nodes: the only
# 2-opt + exchange local optimum is the square itself (cost 40).
SQUARE_WITH_DECOYS = SQUARE + [(100, 0, 1000), (100, 100, 1000), (0, 100, 1000), (50, 50, 1000)]


def make_ctx(points, name="test", candidate_count=10) -> ProblemContext:
    return ProblemContext.from_instance(instance_from_points(name, points), candidate_count=candidate_count)


def random_points(n, seed):
    rng = random.Random(seed)
    return [(rng.randint(0, 2000), rng.randint(0, 1000), rng.randint(0, 800)) for _ in range(n)]


def edge_set(route):
    return {frozenset(pair) for pair in zip(route, route[1:])}


@pytest.fixture
def square_ctx():
    return make_ctx(SQUARE, "square")


@pytest.fixture
def decoy_ctx():
    return make_ctx(SQUARE_WITH_DECOYS, "decoys")


@pytest.fixture
def random_ctx():
    return make_ctx(random_points(40, seed=11), "random40", candidate_count=5)


@pytest.fixture
def csv_instance(tmp_path):
    path = tmp_path / "tiny.csv"
    rows = ["x;y;cost"] + [f"{x};{y};{c}" for x, y, c in random_points(12, seed=3)]
    path.write_text("\n".join(rows) + "\n")
    return path
