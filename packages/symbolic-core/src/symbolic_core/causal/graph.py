"""
causal/graph.py - Causal Graph

Directed graph of causal variables keyed by node id.

Supports:
- Adding and removing nodes and edges (self-loops rejected)
- Parents, children, ancestors, descendants
- Markov blanket
- Directed path enumeration
- Cycle detection and topological ordering

Traversals use explicit work stacks, so graph depth never touches the
Python recursion limit. Graph analysis assumes the graph stays acyclic;
``has_cycle`` reports cycles without treating them as errors.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from .types import CausalEdge, CausalNode, CausalPath

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


class GraphError(ValueError):
    """Structurally invalid graph edit."""


class CausalGraph:
    """
    A directed graph of causal variables.

    Example:
        graph = CausalGraph("g")
        graph.add_node(CausalNode(id="X", name="Treatment", variable_type="treatment"))
        graph.add_node(CausalNode(id="Y", name="Outcome", variable_type="outcome"))
        graph.add_edge(CausalEdge(id="e1", source="X", target="Y", strength=0.8))

        graph.get_parents("Y")  # [CausalNode(id="X", ...)]
    """

    def __init__(self, id: str, name: str | None = None):
        self.id = id
        self.name = name or id
        self._nodes: dict[str, CausalNode] = {}
        self._edges: dict[str, CausalEdge] = {}
        self._out: dict[str, list[str]] = defaultdict(list)  # node -> edge ids
        self._in: dict[str, list[str]] = defaultdict(list)

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def add_node(self, node: CausalNode, replace: bool = True) -> CausalNode:
        """Add a node, replacing any node with the same id.

        Raises:
            GraphError: if the id exists and replace is False
        """
        if not replace and node.id in self._nodes:
            raise GraphError(f"Node already exists: {node.id}")
        self._nodes[node.id] = node
        return node

    def remove_node(self, node_id: str) -> bool:
        """Remove a node together with its incident edges."""
        if node_id not in self._nodes:
            return False
        for edge_id in list(self._out.get(node_id, [])) + list(self._in.get(node_id, [])):
            self.remove_edge(edge_id)
        del self._nodes[node_id]
        self._out.pop(node_id, None)
        self._in.pop(node_id, None)
        return True

    def get_node(self, node_id: str) -> CausalNode | None:
        return self._nodes.get(node_id)

    def get_nodes(self) -> list[CausalNode]:
        return list(self._nodes.values())

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def add_edge(self, edge: CausalEdge) -> CausalEdge:
        """Add a directed edge.

        Raises:
            GraphError: self-loop, unknown endpoint, or duplicate edge id
        """
        if edge.source == edge.target:
            raise GraphError(f"Self-loop not allowed: {edge.source}")
        for endpoint in (edge.source, edge.target):
            if endpoint not in self._nodes:
                raise GraphError(f"Node not found: {endpoint}")
        if edge.id in self._edges:
            raise GraphError(f"Edge already exists: {edge.id}")

        self._edges[edge.id] = edge
        self._out[edge.source].append(edge.id)
        self._in[edge.target].append(edge.id)
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            return False
        self._out[edge.source].remove(edge_id)
        self._in[edge.target].remove(edge_id)
        return True

    def get_edge(self, edge_id: str) -> CausalEdge | None:
        return self._edges.get(edge_id)

    def get_edges(self) -> list[CausalEdge]:
        return list(self._edges.values())

    def get_edge_between(self, source: str, target: str) -> CausalEdge | None:
        """The first edge source -> target, if any."""
        for edge_id in self._out.get(source, []):
            edge = self._edges[edge_id]
            if edge.target == target:
                return edge
        return None

    def incoming_edges(self, node_id: str) -> list[CausalEdge]:
        return [self._edges[e] for e in self._in.get(node_id, [])]

    def outgoing_edges(self, node_id: str) -> list[CausalEdge]:
        return [self._edges[e] for e in self._out.get(node_id, [])]

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def parent_ids(self, node_id: str) -> list[str]:
        return list(dict.fromkeys(self._edges[e].source for e in self._in.get(node_id, [])))

    def child_ids(self, node_id: str) -> list[str]:
        return list(dict.fromkeys(self._edges[e].target for e in self._out.get(node_id, [])))

    def get_parents(self, node_id: str) -> list[CausalNode]:
        """Get immediate parents of a node."""
        return [self._nodes[p] for p in self.parent_ids(node_id)]

    def get_children(self, node_id: str) -> list[CausalNode]:
        """Get immediate children of a node."""
        return [self._nodes[c] for c in self.child_ids(node_id)]

    def ancestor_ids(self, node_id: str) -> set[str]:
        """Ids of all ancestors (recursive parents)."""
        ancestors = set()
        to_visit = self.parent_ids(node_id)

        while to_visit:
            current = to_visit.pop()
            if current not in ancestors:
                ancestors.add(current)
                to_visit.extend(self.parent_ids(current))

        ancestors.discard(node_id)
        return ancestors

    def descendant_ids(self, node_id: str) -> set[str]:
        """Ids of all descendants (recursive children)."""
        descendants = set()
        to_visit = self.child_ids(node_id)

        while to_visit:
            current = to_visit.pop()
            if current not in descendants:
                descendants.add(current)
                to_visit.extend(self.child_ids(current))

        descendants.discard(node_id)
        return descendants

    def get_ancestors(self, node_id: str) -> list[CausalNode]:
        return [self._nodes[n] for n in self._ordered(self.ancestor_ids(node_id))]

    def get_descendants(self, node_id: str) -> list[CausalNode]:
        return [self._nodes[n] for n in self._ordered(self.descendant_ids(node_id))]

    def get_markov_blanket(self, node_id: str) -> list[CausalNode]:
        """Parents, children and the children's other parents."""
        blanket = set(self.parent_ids(node_id))
        for child in self.child_ids(node_id):
            blanket.add(child)
            blanket.update(self.parent_ids(child))
        blanket.discard(node_id)
        return [self._nodes[n] for n in self._ordered(blanket)]

    def _ordered(self, ids: set[str]) -> list[str]:
        # Insertion order of nodes keeps results deterministic
        return [n for n in self._nodes if n in ids]

    # -------------------------------------------------------------------------
    # Paths and cycles
    # -------------------------------------------------------------------------

    def find_paths(self, source: str, target: str, max_paths: int = 10000) -> list[CausalPath]:
        """Enumerate simple directed paths from source to target.

        Args:
            source: Start node id
            target: End node id
            max_paths: Stop after this many paths

        Returns:
            Paths in depth-first order
        """
        paths: list[CausalPath] = []
        if source not in self._nodes or target not in self._nodes:
            return paths

        # Each entry: (node, path of node ids, path of edge ids)
        stack = [(source, [source], [])]
        while stack and len(paths) < max_paths:
            node, nodes, edges = stack.pop()
            if node == target and len(nodes) > 1:
                strength = 1.0
                for edge_id in edges:
                    strength *= self._edges[edge_id].signed_strength
                paths.append(CausalPath(nodes=nodes, edges=edges, strength=strength))
                continue
            for edge_id in reversed(self._out.get(node, [])):
                nxt = self._edges[edge_id].target
                if nxt not in nodes:
                    stack.append((nxt, nodes + [nxt], edges + [edge_id]))

        if len(paths) >= max_paths:
            logger.debug("Path enumeration %s -> %s stopped at %d paths", source, target, max_paths)
        return paths

    def has_cycle(self) -> bool:
        """Detect a directed cycle with white/gray/black colouring."""
        color = {n: _WHITE for n in self._nodes}

        for root in self._nodes:
            if color[root] != _WHITE:
                continue
            color[root] = _GRAY
            stack = [(root, iter(self.child_ids(root)))]
            while stack:
                node, children = stack[-1]
                advanced = False
                for child in children:
                    if color[child] == _GRAY:
                        return True
                    if color[child] == _WHITE:
                        color[child] = _GRAY
                        stack.append((child, iter(self.child_ids(child))))
                        advanced = True
                        break
                if not advanced:
                    color[node] = _BLACK
                    stack.pop()
        return False

    def topological_sort(self) -> list[str]:
        """Node ids with every parent before its children.

        Raises:
            GraphError: if the graph has a cycle
        """
        in_degree = {n: len(self.parent_ids(n)) for n in self._nodes}
        ready = [n for n in self._nodes if in_degree[n] == 0]
        order = []
        while ready:
            node = ready.pop(0)
            order.append(node)
            for child in self.child_ids(node):
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    ready.append(child)
        if len(order) != len(self._nodes):
            raise GraphError(f"Graph {self.id} has a cycle")
        return order

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Export to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [node.model_dump(exclude_none=True) for node in self._nodes.values()],
            "edges": [edge.model_dump(exclude_none=True) for edge in self._edges.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CausalGraph:
        """Import from dictionary."""
        graph = cls(data["id"], data.get("name"))
        for node_data in data.get("nodes", []):
            graph.add_node(CausalNode.model_validate(node_data))
        for edge_data in data.get("edges", []):
            graph.add_edge(CausalEdge.model_validate(edge_data))
        return graph

    def __repr__(self) -> str:
        return f"CausalGraph({self.id!r}, nodes={len(self._nodes)}, edges={len(self._edges)})"
