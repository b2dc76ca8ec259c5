"""
causal - Causal graphs and causal inference

Typed causal DAGs with d-separation, backdoor/front-door adjustment
search, interventional effects, ATE estimation and counterfactuals.

Example:
    from symbolic_core.causal import CausalGraphBuilder, CausalInferenceEngine

    graph = (
        CausalGraphBuilder.create("g")
        .treatment("X").outcome("Y").confounder("Z")
        .from_("Z").causes("X").causes("Y")
        .from_("X").causes("Y", strength=0.8)
        .build()
    )
    CausalInferenceEngine(graph).is_identifiable("X", "Y").identifiable  # True
"""

from .analysis import (
    backdoor_paths,
    d_separation,
    find_backdoor_adjustment,
    find_frontdoor_adjustment,
    find_minimal_separating_set,
    find_undirected_paths,
    get_triple_type,
    is_path_blocked,
)
from .builder import CausalGraphBuilder
from .counterfactual import CounterfactualReasoner, evaluate_counterfactual
from .graph import CausalGraph, GraphError
from .inference import CausalInferenceEngine, propagate_strengths
from .types import (
    AdjustmentSet,
    ATEResult,
    CausalEdge,
    CausalNode,
    CausalPath,
    CounterfactualQuery,
    CounterfactualResult,
    DSeparationResult,
    IdentifiabilityResult,
    InterventionalResult,
    StructuralEquation,
    parse_polynomial_term,
)

__all__ = [
    # Types
    "CausalNode",
    "CausalEdge",
    "StructuralEquation",
    "CausalPath",
    "DSeparationResult",
    "AdjustmentSet",
    "IdentifiabilityResult",
    "InterventionalResult",
    "ATEResult",
    "CounterfactualQuery",
    "CounterfactualResult",
    "parse_polynomial_term",
    # Graph
    "CausalGraph",
    "GraphError",
    "CausalGraphBuilder",
    # Analysis
    "get_triple_type",
    "find_undirected_paths",
    "is_path_blocked",
    "backdoor_paths",
    "d_separation",
    "find_minimal_separating_set",
    "find_backdoor_adjustment",
    "find_frontdoor_adjustment",
    # Inference
    "CausalInferenceEngine",
    "propagate_strengths",
    "CounterfactualReasoner",
    "evaluate_counterfactual",
]
