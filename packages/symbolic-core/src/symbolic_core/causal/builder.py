"""
causal/builder.py - Fluent construction of causal graphs

Example:
    graph = (
        CausalGraphBuilder.create("smoking")
        .treatment("X", "Smoking")
        .outcome("Y", "Cancer")
        .confounder("Z", "Genotype")
        .from_("Z").causes("X").causes("Y")
        .from_("X").causes("Y", strength=0.8)
        .with_equation("Y", StructuralEquation(coefficients={"X": 0.8, "Z": 0.3}))
        .build()
    )

Edges are collected and added when ``build`` runs, so they may mention
variables declared later. Variables that are never declared become
``observed`` nodes.
"""
from __future__ import annotations

import logging
from typing import Any

from .graph import CausalGraph, GraphError
from .types import CausalEdge, CausalNode, RelationType, StructuralEquation, VariableType

logger = logging.getLogger(__name__)


class CausalGraphBuilder:
    """Fluent builder for CausalGraph."""

    def __init__(self, id: str, name: str | None = None):
        self._id = id
        self._name = name
        self._nodes: dict[str, dict[str, Any]] = {}
        self._edges: list[dict[str, Any]] = []
        self._current: str | None = None

    @classmethod
    def create(cls, id: str, name: str | None = None) -> CausalGraphBuilder:
        return cls(id, name)

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------

    def variable(
        self,
        id: str,
        name: str | None = None,
        variable_type: VariableType = "observed",
        description: str | None = None
    ) -> CausalGraphBuilder:
        """Declare (or redeclare) a variable. Later declarations override."""
        data = self._nodes.setdefault(id, {"id": id})
        data["name"] = name or id
        data["variable_type"] = variable_type
        if description is not None:
            data["description"] = description
        self._current = id
        return self

    def treatment(self, id: str, name: str | None = None) -> CausalGraphBuilder:
        return self.variable(id, name, "treatment")

    def outcome(self, id: str, name: str | None = None) -> CausalGraphBuilder:
        return self.variable(id, name, "outcome")

    def confounder(self, id: str, name: str | None = None) -> CausalGraphBuilder:
        return self.variable(id, name, "confounder")

    def mediator(self, id: str, name: str | None = None) -> CausalGraphBuilder:
        return self.variable(id, name, "mediator")

    def latent(self, id: str, name: str | None = None) -> CausalGraphBuilder:
        return self.variable(id, name, "latent")

    def with_equation(
        self,
        node_or_equation: str | StructuralEquation | dict,
        equation: StructuralEquation | dict | None = None
    ) -> CausalGraphBuilder:
        """Attach a structural equation.

        ``with_equation("Y", eq)`` targets Y; ``with_equation(eq)`` targets
        the current variable (the last declared or ``from_`` node).
        """
        if equation is None:
            if self._current is None:
                raise GraphError("with_equation() needs a node id or a current variable")
            node_id, equation = self._current, node_or_equation
        else:
            node_id = node_or_equation
        if isinstance(equation, dict):
            equation = StructuralEquation.model_validate(equation)
        self._ensure(node_id)["equation"] = equation
        return self

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def from_(self, id: str) -> CausalGraphBuilder:
        """Select the source for the following relation calls."""
        self._ensure(id)
        self._current = id
        return self

    def causes(self, target: str, strength: float = 1.0, confidence: float = 1.0,
               mechanism: str | None = None) -> CausalGraphBuilder:
        return self._relation(target, "causes", strength, confidence, mechanism)

    def prevents(self, target: str, strength: float = 1.0, confidence: float = 1.0,
                 mechanism: str | None = None) -> CausalGraphBuilder:
        return self._relation(target, "prevents", strength, confidence, mechanism)

    def enables(self, target: str, strength: float = 1.0, confidence: float = 1.0,
                mechanism: str | None = None) -> CausalGraphBuilder:
        return self._relation(target, "enables", strength, confidence, mechanism)

    def inhibits(self, target: str, strength: float = 1.0, confidence: float = 1.0,
                 mechanism: str | None = None) -> CausalGraphBuilder:
        return self._relation(target, "inhibits", strength, confidence, mechanism)

    def confounds(self, target: str, strength: float = 1.0, confidence: float = 1.0,
                  mechanism: str | None = None) -> CausalGraphBuilder:
        return self._relation(target, "confounds", strength, confidence, mechanism)

    def _relation(self, target: str, relation: RelationType, strength: float,
                  confidence: float, mechanism: str | None) -> CausalGraphBuilder:
        if self._current is None:
            raise GraphError(f"{relation}({target!r}) called before from_()")
        self._ensure(target)
        self._edges.append({
            "id": f"e{len(self._edges) + 1}",
            "source": self._current,
            "target": target,
            "relation_type": relation,
            "strength": strength,
            "confidence": confidence,
            "mechanism": mechanism,
        })
        return self

    def _ensure(self, node_id: str) -> dict[str, Any]:
        return self._nodes.setdefault(node_id, {"id": node_id, "name": node_id})

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    def build(self) -> CausalGraph:
        """Create the graph.

        Raises:
            GraphError: on self-loops
            pydantic.ValidationError: on invalid node or edge values
        """
        graph = CausalGraph(self._id, self._name)
        for data in self._nodes.values():
            graph.add_node(CausalNode(**data))
        for data in self._edges:
            graph.add_edge(CausalEdge(**data))
        logger.debug("Built graph %s: %d nodes, %d edges", self._id, len(self._nodes), len(self._edges))
        return graph
