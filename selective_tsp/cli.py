import argparse
import json
import logging
import random
import time
from pathlib import Path

from selective_tsp.data import load_data, load_instance
from selective_tsp.evaluation import SolutionSpace, evaluate_solver, summarize, validate_result
from selective_tsp.experiments import PARTS, ExperimentConfig, run_experiments
from selective_tsp.solvers import (
    STRATEGIES,
    CompositionSolver,
    ConstructiveSolver,
    ILSConfig,
    IteratedLocalSearch,
    LargeNeighborhoodSearch,
    LNSConfig,
    LocalSearch,
    LocalSearchConfig,
    MSLSConfig,
    MultiStartLocalSearch,
    ProblemContext,
)


SEARCH_METHODS = ("ls", "msls", "ils", "lns")


def log(msg: str) -> None:
    ts = time.strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


def _context(path: str, candidate_count: int) -> ProblemContext:
    instance = load_instance(Path(path))
    ctx = ProblemContext.from_instance(instance, candidate_count=candidate_count)
    log(f"loaded {instance.name}: {ctx.size} nodes, tour size {ctx.target_count}")
    return ctx


def _local_search_config(args) -> LocalSearchConfig:
    return LocalSearchConfig(
        steepest=not args.greedy,
        node_swap=args.node_swap,
        use_candidates=args.candidates,
        use_move_list=args.move_list,
    )


def _report(space: SolutionSpace, output) -> None:
    print(space.best())
    print(json.dumps(space.stats_row()))
    if output:
        space.save_json(Path(output))
        log(f"saved results to {output}")


def construct(args) -> None:
    ctx = _context(args.instance, args.candidate_count)
    rng = random.Random(args.seed)
    params = {}
    if args.regret_weight is not None:
        params["regret_weight"] = args.regret_weight
    space = SolutionSpace(args.strategy)
    starts = [args.start] if args.start is not None else range(ctx.size)
    if args.strategy == "random":
        starts = range(args.runs)
    for start in starts:
        solver = ConstructiveSolver(args.strategy, start=start, rng=rng, **params)
        if args.improve:
            solver = CompositionSolver(solver, LocalSearch(LocalSearchConfig(), rng=rng))
        record = evaluate_solver(solver, ctx)
        validate_result(ctx, record.result)
        space.add(record)
    log(f"{args.strategy}: {len(space)} tours in {sum(r.runtime for r in space.records):.2f}s")
    _report(space, args.output)


def _search_solver(args, rng: random.Random):
    ls_cfg = _local_search_config(args)
    if args.method == "ls":
        return CompositionSolver(ConstructiveSolver("random", rng=rng), LocalSearch(ls_cfg, rng=rng))
    if args.method == "msls":
        return MultiStartLocalSearch(MSLSConfig(local_search=ls_cfg, iterations=args.iterations), rng=rng)
    if args.method == "ils":
        return IteratedLocalSearch(
            ILSConfig(local_search=ls_cfg, time_limit=args.time_limit, max_iterations=args.max_iterations), rng=rng
        )
    return LargeNeighborhoodSearch(
        LNSConfig(
            local_search=ls_cfg,
            time_limit=args.time_limit,
            max_iterations=args.max_iterations,
            destroy_fraction=args.destroy_fraction,
            use_local_search=not args.no_local_search,
            repair_regret_weight=args.regret_weight,
        ),
        rng=rng,
    )


def search(args) -> None:
    ctx = _context(args.instance, args.candidate_count)
    rng = random.Random(args.seed)
    space = SolutionSpace(args.method)
    for run in range(args.runs):
        record = evaluate_solver(_search_solver(args, rng), ctx)
        validate_result(ctx, record.result)
        space.add(record)
        extra = "" if record.iterations is None else f" iterations={record.iterations}"
        log(f"run {run + 1}/{args.runs}: cost={record.cost:.0f} time={record.runtime:.2f}s{extra}")
    _report(space, args.output)


def experiment(args) -> None:
    t0 = time.perf_counter()
    data_root = Path(args.data_root)
    log(f"loading data from {data_root}")
    instances = load_data(data_root, max_nodes=args.max_nodes)
    if not instances:
        raise RuntimeError(
            f"No instances found in {data_root}. "
            "Place .csv (x;y;cost) or .tsp files there before running."
        )
    log(f"loaded {len(instances)} instances in {time.perf_counter() - t0:.2f}s")
    cfg = ExperimentConfig(
        runs=args.runs,
        msls_iterations=args.msls_iterations,
        random_seed=args.seed,
        candidate_count=args.candidate_count,
        start_nodes=args.start_nodes,
    )
    spaces = run_experiments(instances, cfg, parts=args.parts, progress=log)
    for row in summarize(spaces):
        print(json.dumps(row))
    if args.output_dir:
        out = Path(args.output_dir)
        for space in spaces:
            space.save_json(out / f"{space.instance}_{space.method}.json")
        log(f"saved {len(spaces)} result files to {out}")
    log(f"done in {time.perf_counter() - t0:.2f}s")


def _add_local_search_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--greedy", action="store_true", help="Apply the first improving move instead of the best")
    parser.add_argument("--node-swap", action="store_true", help="Intra-route node swap instead of edge reversal")
    parser.add_argument("--candidates", action="store_true", help="Restrict moves to candidate edges")
    parser.add_argument("--move-list", action="store_true", help="Reuse improving moves between iterations")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Selective TSP heuristics CLI")
    parser.add_argument("--verbose", action="store_true", help="Log solver progress at debug level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    construct_parser = subparsers.add_parser("construct", help="Build tours with a construction heuristic")
    construct_parser.add_argument("instance")
    construct_parser.add_argument("--strategy", choices=STRATEGIES, default="greedy_cycle")
    construct_parser.add_argument("--start", type=int, default=None, help="Start node (default: every node)")
    construct_parser.add_argument("--regret-weight", type=float, default=None)
    construct_parser.add_argument("--improve", action="store_true", help="Follow with steepest local search")
    construct_parser.add_argument("--runs", type=int, default=20, help="Number of random tours")
    construct_parser.add_argument("--seed", type=int, default=123)
    construct_parser.add_argument("--candidate-count", type=int, default=10)
    construct_parser.add_argument("--output", default=None)
    construct_parser.set_defaults(func=construct)

    search_parser = subparsers.add_parser("search", help="Run local search or a metaheuristic")
    search_parser.add_argument("instance")
    search_parser.add_argument("--method", choices=SEARCH_METHODS, default="msls")
    search_parser.add_argument("--runs", type=int, default=1)
    search_parser.add_argument("--iterations", type=int, default=200, help="MSLS restarts")
    search_parser.add_argument("--time-limit", type=float, default=1.0, help="ILS / LNS budget in seconds")
    search_parser.add_argument("--max-iterations", type=int, default=None)
    search_parser.add_argument("--destroy-fraction", type=float, default=0.3)
    search_parser.add_argument("--no-local-search", action="store_true", help="LNS without local search")
    search_parser.add_argument("--regret-weight", type=float, default=None, help="LNS regret repair weight")
    search_parser.add_argument("--seed", type=int, default=123)
    search_parser.add_argument("--candidate-count", type=int, default=10)
    search_parser.add_argument("--output", default=None)
    _add_local_search_flags(search_parser)
    search_parser.set_defaults(func=search)

    exp_parser = subparsers.add_parser("experiment", help="Run the full comparison on every instance")
    exp_parser.add_argument("--data-root", default="data")
    exp_parser.add_argument("--max-nodes", type=int, default=None)
    exp_parser.add_argument("--runs", type=int, default=20)
    exp_parser.add_argument("--msls-iterations", type=int, default=200)
    exp_parser.add_argument("--start-nodes", type=int, default=None, help="Sample this many start nodes")
    exp_parser.add_argument("--parts", nargs="+", choices=PARTS, default=list(PARTS))
    exp_parser.add_argument("--seed", type=int, default=123)
    exp_parser.add_argument("--candidate-count", type=int, default=10)
    exp_parser.add_argument("--output-dir", default=None)
    exp_parser.set_defaults(func=experiment)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    args.func(args)


if __name__ == "__main__":
    main()
