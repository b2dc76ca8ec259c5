"""
tests/test_causal_graph.py - Causal Graph Tests

Key Properties Tested:
    - Node and edge management with structural validation
    - Parents, children, ancestors, descendants, Markov blanket
    - Directed path enumeration and cycle detection
    - Dictionary round-trip
"""

import pytest
from pydantic import ValidationError

from symbolic_core.causal import CausalEdge, CausalGraph, CausalNode, GraphError

# =============================================================================
# FIXTURES
# =============================================================================


def node(id, variable_type="observed"):
    return CausalNode(id=id, name=id, variable_type=variable_type)


def edge(id, source, target, **kwargs):
    return CausalEdge(id=id, source=source, target=target, **kwargs)


@pytest.fixture
def chain():
    """A -> B -> C, A -> C, D -> C."""
    graph = CausalGraph("chain")
    for n in "ABCD":
        graph.add_node(node(n))
    graph.add_edge(edge("e1", "A", "B", strength=0.5))
    graph.add_edge(edge("e2", "B", "C", strength=0.4))
    graph.add_edge(edge("e3", "A", "C", strength=0.9))
    graph.add_edge(edge("e4", "D", "C"))
    return graph


# =============================================================================
# TESTS: NODES AND EDGES
# =============================================================================


class TestNodesAndEdges:
    """Graph editing."""

    def test_add_and_get(self, chain):
        assert len(chain) == 4
        assert "A" in chain
        assert chain.get_node("A").name == "A"
        assert chain.get_node("missing") is None
        assert len(chain.get_edges()) == 4

    def test_replace_node(self, chain):
        chain.add_node(CausalNode(id="A", name="Renamed"))
        assert chain.get_node("A").name == "Renamed"
        assert len(chain) == 4

    def test_duplicate_node_strict(self, chain):
        with pytest.raises(GraphError, match="Node already exists"):
            chain.add_node(node("A"), replace=False)

    def test_self_loop_rejected(self, chain):
        with pytest.raises(GraphError, match="Self-loop not allowed: A"):
            chain.add_edge(edge("bad", "A", "A"))

    def test_missing_endpoint(self, chain):
        with pytest.raises(GraphError, match="Node not found: Z"):
            chain.add_edge(edge("bad", "A", "Z"))

    def test_duplicate_edge_id(self, chain):
        with pytest.raises(GraphError, match="Edge already exists"):
            chain.add_edge(edge("e1", "D", "A"))

    def test_invalid_strength(self):
        with pytest.raises(ValidationError):
            edge("e1", "A", "B", strength=1.5)

    def test_invalid_variable_type(self):
        with pytest.raises(ValidationError):
            CausalNode(id="A", name="A", variable_type="hidden")

    def test_remove_node_removes_edges(self, chain):
        assert chain.remove_node("B")
        assert "B" not in chain
        assert chain.get_edge("e1") is None
        assert chain.get_edge("e2") is None
        assert [n.id for n in chain.get_parents("C")] == ["A", "D"]
        assert not chain.remove_node("B")

    def test_remove_edge(self, chain):
        assert chain.remove_edge("e3")
        assert chain.get_edge_between("A", "C") is None
        assert not chain.remove_edge("e3")

    def test_edge_between(self, chain):
        assert chain.get_edge_between("A", "B").id == "e1"
        assert chain.get_edge_between("B", "A") is None


# =============================================================================
# TESTS: STRUCTURE
# =============================================================================


class TestStructure:
    """Relationships between nodes."""

    def test_parents_and_children(self, chain):
        assert [n.id for n in chain.get_parents("C")] == ["B", "A", "D"]
        assert [n.id for n in chain.get_children("A")] == ["B", "C"]
        assert chain.get_parents("A") == []

    def test_ancestors(self, chain):
        assert [n.id for n in chain.get_ancestors("C")] == ["A", "B", "D"]
        assert chain.get_ancestors("A") == []

    def test_descendants(self, chain):
        assert [n.id for n in chain.get_descendants("A")] == ["B", "C"]
        assert chain.get_descendants("C") == []

    def test_markov_blanket(self, chain):
        # Parents: none; children: B, C; co-parents of C: B, D
        assert [n.id for n in chain.get_markov_blanket("A")] == ["B", "C", "D"]
        assert [n.id for n in chain.get_markov_blanket("B")] == ["A", "C", "D"]

    def test_markov_blanket_excludes_node(self, confounder_graph):
        ids = [n.id for n in confounder_graph.get_markov_blanket("X")]
        assert "X" not in ids
        assert set(ids) == {"Y", "Z"}


# =============================================================================
# TESTS: PATHS AND CYCLES
# =============================================================================


class TestPaths:
    """Directed paths, cycles and ordering."""

    def test_find_paths(self, chain):
        paths = chain.find_paths("A", "C")
        assert [p.nodes for p in paths] == [["A", "B", "C"], ["A", "C"]]
        assert paths[0].edges == ["e1", "e2"]
        assert paths[0].strength == pytest.approx(0.2)
        assert paths[1].strength == pytest.approx(0.9)

    def test_no_path_against_edges(self, chain):
        assert chain.find_paths("C", "A") == []

    def test_max_paths(self, chain):
        assert len(chain.find_paths("A", "C", max_paths=1)) == 1

    def test_negative_relation_strength(self):
        graph = CausalGraph("g")
        graph.add_node(node("A"))
        graph.add_node(node("B"))
        graph.add_edge(edge("e1", "A", "B", relation_type="prevents", strength=0.5))
        assert graph.find_paths("A", "B")[0].strength == pytest.approx(-0.5)

    def test_acyclic(self, chain):
        assert not chain.has_cycle()

    def test_cycle_detected(self, chain):
        chain.add_edge(edge("back", "C", "A"))
        assert chain.has_cycle()
        with pytest.raises(GraphError):
            chain.topological_sort()

    def test_topological_sort(self, chain):
        order = chain.topological_sort()
        for e in chain.get_edges():
            assert order.index(e.source) < order.index(e.target)


# =============================================================================
# TESTS: PERSISTENCE
# =============================================================================


class TestPersistence:
    """to_dict / from_dict."""

    def test_round_trip(self, chain):
        restored = CausalGraph.from_dict(chain.to_dict())
        assert restored.id == "chain"
        assert [n.id for n in restored.get_nodes()] == ["A", "B", "C", "D"]
        assert restored.get_edges() == chain.get_edges()

    def test_equations_survive(self):
        graph = CausalGraph("g")
        graph.add_node(CausalNode(
            id="Y",
            name="Y",
            equation={"coefficients": {"X": 2.0}, "intercept": 1.0},
        ))
        restored = CausalGraph.from_dict(graph.to_dict())
        assert restored.get_node("Y").equation.evaluate({"X": 3.0}) == 7.0
