from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import tsplib95


@dataclass(frozen=True)
class Node:
    x: float
    y: float
    cost: int


@dataclass
class Instance:
    name: str
    path: Optional[Path]
    nodes: List[Node]

    def __len__(self) -> int:
        return len(self.nodes)


INSTANCE_SUFFIXES = (".csv", ".tsp")


def _parse_row(line: str) -> Optional[Node]:
    values = [v.strip() for v in line.split(";")]
    if len(values) < 3:
        return None
    try:
        return Node(x=int(values[0]), y=int(values[1]), cost=int(values[2]))
    except ValueError:
        return None


def read_csv_nodes(path: Path) -> List[Node]:
    """
    Read ``x;y;cost`` rows. A leading header row that does not parse as
    numbers is skipped; any later malformed row is an error.
    """
    nodes: List[Node] = []
    with path.open("r") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            node = _parse_row(line)
            if node is None:
                if not nodes and lineno == 1:
                    continue
                raise ValueError(f"{path}:{lineno}: expected 'x;y;cost', got {line.strip()!r}")
            nodes.append(node)
    return nodes


def read_tsplib_nodes(path: Path) -> List[Node]:
    # TSPLIB coordinate files carry no visit costs.
    problem = tsplib95.load(str(path))
    if not problem.node_coords:
        raise ValueError(f"{path}: TSPLIB instance has no NODE_COORD_SECTION")
    nodes = []
    for label in sorted(problem.node_coords):
        x, y = problem.node_coords[label][:2]
        nodes.append(Node(x=x, y=y, cost=0))
    return nodes


def load_instance(path: Path) -> Instance:
    path = Path(path)
    if path.suffix.lower() == ".tsp":
        nodes = read_tsplib_nodes(path)
    else:
        nodes = read_csv_nodes(path)
    return Instance(name=path.stem, path=path, nodes=nodes)


def load_data(root: Path, max_nodes: Optional[int] = None) -> List[Instance]:
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"data directory {root} does not exist")
    instances: List[Instance] = []
    for p in sorted(root.iterdir()):
        if p.suffix.lower() not in INSTANCE_SUFFIXES:
            continue
        inst = load_instance(p)
        if max_nodes is not None and len(inst) > max_nodes:
            continue
        instances.append(inst)
    return instances


def instance_from_points(name: str, points: Sequence[Sequence[float]]) -> Instance:
    """Build an in-memory instance from ``(x, y, cost)`` triples."""
    return Instance(name=name, path=None, nodes=[Node(x=p[0], y=p[1], cost=p[2]) for p in points])
