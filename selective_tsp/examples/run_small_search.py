import random

from selective_tsp.data import instance_from_points
from selective_tsp.evaluation import SolutionSpace, evaluate_solver
from selective_tsp.solvers import (
    ILSConfig,
    IteratedLocalSearch,
    LargeNeighborhoodSearch,
    LNSConfig,
    MSLSConfig,
    MultiStartLocalSearch,
    ProblemContext,
)


def main():
    rng = random.Random(7)
    points = [(rng.randint(0, 1000), rng.randint(0, 1000), rng.randint(0, 500)) for _ in range(60)]
    ctx = ProblemContext.from_instance(instance_from_points("random60", points))

    msls = SolutionSpace("msls", "random60")
    for _ in range(3):
        msls.add(evaluate_solver(MultiStartLocalSearch(MSLSConfig(iterations=20), rng=rng), ctx))
    budget = msls.average_runtime()
    print(f"msls: {msls.stats_row()}")

    for name, solver in (
        ("ils", IteratedLocalSearch(ILSConfig(time_limit=budget), rng=rng)),
        ("lns", LargeNeighborhoodSearch(LNSConfig(time_limit=budget), rng=rng)),
    ):
        space = SolutionSpace(name, "random60")
        for _ in range(3):
            space.add(evaluate_solver(solver, ctx))
        print(f"{name}: {space.stats_row()}")


if __name__ == "__main__":
    main()
