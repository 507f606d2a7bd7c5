"""
Heuristics for the selective travelling salesman problem: pick half of the
nodes and a cycle through them minimizing edge length plus visit costs.
"""

__all__ = [
    "data",
    "distance",
    "evaluation",
    "experiments",
    "solvers",
]
