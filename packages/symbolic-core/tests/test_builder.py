"""
tests/test_builder.py - Fluent Graph Builder Tests
"""

import pytest
from pydantic import ValidationError

from symbolic_core.causal import CausalGraphBuilder, GraphError, StructuralEquation

# =============================================================================
# TESTS
# =============================================================================


class TestBuilder:
    """CausalGraphBuilder produces validated graphs."""

    def test_confounder_graph(self, confounder_graph):
        assert len(confounder_graph) == 3
        assert confounder_graph.get_node("X").variable_type == "treatment"
        assert confounder_graph.get_node("Y").variable_type == "outcome"
        assert confounder_graph.get_node("Z").variable_type == "confounder"
        assert confounder_graph.get_edge_between("X", "Y").strength == 0.8

    def test_edge_ids_in_order(self, confounder_graph):
        assert [e.id for e in confounder_graph.get_edges()] == ["e1", "e2", "e3"]

    def test_chained_relations_share_source(self):
        graph = CausalGraphBuilder.create("g").from_("Z").causes("X").causes("Y").build()
        assert [n.id for n in graph.get_children("Z")] == ["X", "Y"]

    def test_undeclared_variables_are_observed(self):
        graph = CausalGraphBuilder.create("g").from_("A").causes("B").build()
        assert graph.get_node("A").variable_type == "observed"
        assert graph.get_node("B").name == "B"

    def test_later_declaration_overrides(self):
        graph = (
            CausalGraphBuilder.create("g")
            .from_("Z").causes("Y")
            .confounder("Z", "Genotype")
            .build()
        )
        node = graph.get_node("Z")
        assert node.variable_type == "confounder"
        assert node.name == "Genotype"

    def test_relation_types(self):
        graph = (
            CausalGraphBuilder.create("g")
            .from_("A").prevents("B", strength=0.5)
            .from_("C").enables("B", confidence=0.7, mechanism="catalyst")
            .build()
        )
        prevents = graph.get_edge_between("A", "B")
        assert prevents.relation_type == "prevents"
        assert prevents.signed_strength == -0.5
        enables = graph.get_edge_between("C", "B")
        assert enables.confidence == 0.7
        assert enables.mechanism == "catalyst"

    def test_with_equation_for_named_node(self):
        equation = StructuralEquation(coefficients={"X": 0.8}, intercept=0.1)
        graph = (
            CausalGraphBuilder.create("g")
            .from_("X").causes("Y")
            .with_equation("Y", equation)
            .build()
        )
        assert graph.get_node("Y").equation == equation

    def test_with_equation_for_current_node(self):
        graph = (
            CausalGraphBuilder.create("g")
            .outcome("Y")
            .with_equation({"type": "polynomial", "coefficients": {"X^2": 3.0}})
            .from_("X").causes("Y")
            .build()
        )
        equation = graph.get_node("Y").equation
        assert equation.type == "polynomial"
        assert equation.evaluate({"X": 2.0}) == 12.0

    def test_relation_before_from(self):
        with pytest.raises(GraphError):
            CausalGraphBuilder.create("g").causes("Y")

    def test_self_loop(self):
        with pytest.raises(GraphError, match="Self-loop not allowed: A"):
            CausalGraphBuilder.create("g").from_("A").causes("A").build()

    def test_invalid_strength(self):
        with pytest.raises(ValidationError):
            CausalGraphBuilder.create("g").from_("A").causes("B", strength=2.0).build()

    def test_malformed_equation(self):
        with pytest.raises(ValidationError):
            CausalGraphBuilder.create("g").outcome("Y").with_equation({"coefficients": {"^2": 1.0}})
