"""
causal/analysis.py - d-Separation and Adjustment Sets

Graph criteria for conditional independence and effect identification:

- d_separation(graph, x, y, z): are x and y independent given z?
- find_minimal_separating_set: smallest z that separates x and y
- find_backdoor_adjustment: Pearl's backdoor criterion
- find_frontdoor_adjustment: Pearl's front-door criterion

Paths are enumerated in the undirected skeleton and then tested for
blocking with edge directions taken into account:

    chain     a -> b -> c    blocked if b in z
    fork      a <- b -> c    blocked if b in z
    collider  a -> b <- c    blocked unless b or a descendant of b is in z

Latent variables are never proposed as adjustment variables.
"""
from __future__ import annotations

import logging
from itertools import combinations
from typing import Iterable, Literal

from ..config import CausalConfig
from .graph import CausalGraph, GraphError
from .types import AdjustmentSet, DSeparationResult

logger = logging.getLogger(__name__)

TripleType = Literal["chain", "fork", "collider"]


def _require_nodes(graph: CausalGraph, *node_ids: str) -> None:
    for node_id in node_ids:
        if node_id not in graph:
            raise GraphError(f"Node not found: {node_id}")


def get_triple_type(graph: CausalGraph, a: str, b: str, c: str) -> TripleType | None:
    """Classify the middle node b of the path segment a - b - c.

    Returns None when a - b or b - c is not an edge in either direction.
    """
    a_to_b = graph.get_edge_between(a, b) is not None
    b_to_a = graph.get_edge_between(b, a) is not None
    c_to_b = graph.get_edge_between(c, b) is not None
    b_to_c = graph.get_edge_between(b, c) is not None

    if a_to_b and c_to_b:
        return "collider"
    if b_to_a and b_to_c:
        return "fork"
    if (a_to_b and b_to_c) or (c_to_b and b_to_a):
        return "chain"
    return None


def find_undirected_paths(
    graph: CausalGraph,
    x: str,
    y: str,
    max_paths: int = 10000
) -> list[list[str]]:
    """Enumerate simple paths between x and y ignoring edge direction.

    Raises:
        GraphError: if x or y is not in the graph
    """
    _require_nodes(graph, x, y)
    paths: list[list[str]] = []
    if x == y:
        return paths

    stack = [[x]]
    while stack and len(paths) < max_paths:
        path = stack.pop()
        node = path[-1]
        if node == y:
            paths.append(path)
            continue
        neighbours = graph.parent_ids(node) + graph.child_ids(node)
        for nxt in reversed(list(dict.fromkeys(neighbours))):
            if nxt not in path:
                stack.append(path + [nxt])

    if len(paths) >= max_paths:
        logger.debug("Undirected path enumeration %s - %s hit bound %d", x, y, max_paths)
    return paths


def is_path_blocked(graph: CausalGraph, path: list[str], conditioning: Iterable[str]) -> bool:
    """Check whether a path is blocked by the conditioning set."""
    z = set(conditioning)
    for i in range(1, len(path) - 1):
        node = path[i]
        kind = get_triple_type(graph, path[i - 1], node, path[i + 1])
        if kind == "collider":
            if node not in z and not (graph.descendant_ids(node) & z):
                return True
        elif node in z:
            return True
    return False


def d_separation(
    graph: CausalGraph,
    x: str,
    y: str,
    z: Iterable[str] = (),
    config: CausalConfig | None = None
) -> DSeparationResult:
    """Test whether x and y are d-separated given z.

    Example:
        # Z -> X, Z -> Y, X -> Y
        d_separation(graph, "X", "Y", []).separated     # False
        d_separation(graph, "X", "Y", ["Z"]).blocked_paths
        # [["X", "Z", "Y"]]
    """
    config = config or CausalConfig()
    z = list(z)
    blocked, open_ = [], []
    for path in find_undirected_paths(graph, x, y, config.max_paths):
        (blocked if is_path_blocked(graph, path, z) else open_).append(path)
    return DSeparationResult(
        separated=not open_,
        conditioning_set=z,
        blocked_paths=blocked,
        open_paths=open_,
    )


def _observed(graph: CausalGraph, ids: Iterable[str]) -> list[str]:
    """Observed node ids in graph insertion order."""
    wanted = set(ids)
    return [n.id for n in graph.get_nodes() if n.id in wanted and not n.is_latent]


def _subsets(candidates: list[str], max_size: int, min_size: int = 0):
    for size in range(min_size, min(max_size, len(candidates)) + 1):
        yield from combinations(candidates, size)


def find_minimal_separating_set(
    graph: CausalGraph,
    x: str,
    y: str,
    config: CausalConfig | None = None
) -> list[str] | None:
    """Smallest set of observed ancestors of x or y that d-separates them.

    Returns None when x and y are adjacent or no set within the search
    bound separates them.
    """
    config = config or CausalConfig()
    _require_nodes(graph, x, y)
    if graph.get_edge_between(x, y) or graph.get_edge_between(y, x):
        return None

    candidates = _observed(graph, (graph.ancestor_ids(x) | graph.ancestor_ids(y)) - {x, y})
    paths = find_undirected_paths(graph, x, y, config.max_paths)
    for subset in _subsets(candidates, config.max_adjustment_size):
        if all(is_path_blocked(graph, p, subset) for p in paths):
            return list(subset)
    return None


def backdoor_paths(graph: CausalGraph, x: str, y: str, max_paths: int = 10000) -> list[list[str]]:
    """Paths from x to y that start with an edge pointing into x."""
    parents = set(graph.parent_ids(x))
    return [p for p in find_undirected_paths(graph, x, y, max_paths) if p[1] in parents]


def find_backdoor_adjustment(
    graph: CausalGraph,
    x: str,
    y: str,
    config: CausalConfig | None = None
) -> AdjustmentSet | None:
    """Smallest set of observed non-descendants of x blocking every backdoor path.

    Returns None if no such set exists within the search bound.
    """
    config = config or CausalConfig()
    _require_nodes(graph, x, y)
    descendants = graph.descendant_ids(x)
    candidates = _observed(graph, {n.id for n in graph.get_nodes()} - descendants - {x, y})
    paths = backdoor_paths(graph, x, y, config.max_paths)

    for subset in _subsets(candidates, config.max_adjustment_size):
        if all(is_path_blocked(graph, p, subset) for p in paths):
            variables = list(subset)
            return AdjustmentSet(
                variables=variables,
                type="backdoor",
                treatment=x,
                outcome=y,
                is_valid=not (set(variables) & descendants),
            )

    logger.debug("No backdoor adjustment set for %s -> %s", x, y)
    return None


def find_frontdoor_adjustment(
    graph: CausalGraph,
    x: str,
    y: str,
    config: CausalConfig | None = None
) -> AdjustmentSet | None:
    """Mediator set satisfying the front-door criterion.

    M qualifies when:
    1. every directed path x -> y passes through M
    2. no backdoor path from x to any m in M is open (given nothing)
    3. every backdoor path from m to y is blocked by {x}
    """
    config = config or CausalConfig()
    _require_nodes(graph, x, y)
    directed = graph.find_paths(x, y, config.max_paths)
    if not directed:
        return None

    candidates = _observed(graph, (graph.descendant_ids(x) & graph.ancestor_ids(y)) - {x, y})

    for subset in _subsets(candidates, config.max_adjustment_size, min_size=1):
        mediators = set(subset)
        if not all(mediators & set(p.nodes[1:-1]) for p in directed):
            continue
        if any(
            not is_path_blocked(graph, p, ())
            for m in subset
            for p in backdoor_paths(graph, x, m, config.max_paths)
        ):
            continue
        if any(
            not is_path_blocked(graph, p, (x,))
            for m in subset
            for p in backdoor_paths(graph, m, y, config.max_paths)
        ):
            continue
        return AdjustmentSet(variables=list(subset), type="frontdoor", treatment=x, outcome=y)

    logger.debug("No front-door adjustment set for %s -> %s", x, y)
    return None
