"""
causal/counterfactual.py - Counterfactual Reasoning

Evaluates "what would Y have been if X had been x?" on a structural causal
model with the three-step procedure:

1. Abduction: evaluate every equation in topological order on the factual
   data; for stochastic equations, the residual observed - predicted is the
   noise that produced the observation (unobserved nodes draw fresh noise).
2. Action: override the intervened variables.
3. Prediction: re-evaluate downstream equations in topological order,
   reusing the noise from step 1.

Nodes without an equation are exogenous: their factual value carries over
unchanged unless they are intervened on.
"""
from __future__ import annotations

import logging
import math
import random
from typing import Any, Callable, Mapping

from ..config import CounterfactualConfig
from .graph import CausalGraph, GraphError
from .inference import propagate_strengths
from .types import CounterfactualQuery, CounterfactualResult, StructuralEquation

logger = logging.getLogger(__name__)


class CounterfactualReasoner:
    """Abduction-action-prediction over a causal graph's structural equations.

    Args:
        config: Noise defaults and tolerances
        uniform: Source of uniform draws in [0, 1) (``random.random`` by default)
    """

    def __init__(
        self,
        config: CounterfactualConfig | None = None,
        uniform: Callable[[], float] | None = None
    ):
        self.config = config or CounterfactualConfig()
        self._uniform = uniform or random.random

    # -------------------------------------------------------------------------
    # Noise
    # -------------------------------------------------------------------------

    def sample_noise(self, equation: StructuralEquation) -> float:
        """Draw a noise value for a stochastic equation (0 for deterministic ones)."""
        mean = equation.noise_mean if equation.noise_mean is not None else self.config.default_noise_mean
        std = equation.noise_std if equation.noise_std is not None else self.config.default_noise_std
        if equation.noise_distribution == "gaussian":
            return self.sample_gaussian(mean, std)
        if equation.noise_distribution == "uniform":
            # Uniform on an interval with the requested standard deviation
            half_width = std * math.sqrt(3.0)
            return mean + (2.0 * self._uniform() - 1.0) * half_width
        return 0.0

    def sample_gaussian(self, mean: float = 0.0, std: float = 1.0) -> float:
        """Box-Muller transform. A zero uniform draw is replaced before log()."""
        u1 = self._uniform()
        if u1 <= 0.0:
            u1 = self.config.uniform_epsilon
        u2 = self._uniform()
        z = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + std * z

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        graph: CausalGraph,
        query: CounterfactualQuery | Mapping[str, Any]
    ) -> CounterfactualResult:
        """Answer a counterfactual query.

        Raises:
            GraphError: unknown target or intervened node, or a cyclic graph
        """
        if not isinstance(query, CounterfactualQuery):
            query = CounterfactualQuery(**query)

        for node_id in [query.target, *query.intervention]:
            if node_id not in graph:
                raise GraphError(f"Node not found: {node_id}")

        order = graph.topological_sort()
        factual_values, noise = self._abduct(graph, order, query.factual)
        counterfactual_values = self._predict(graph, order, query, factual_values, noise)

        target = graph.get_node(query.target)
        missing_equation = target.equation is None and query.target not in query.intervention
        if missing_equation:
            logger.warning("No structural equation for %s; factual value passed through", query.target)

        factual_value = factual_values[query.target]
        counterfactual_value = counterfactual_values[query.target]
        return CounterfactualResult(
            target=query.target,
            factual_value=factual_value,
            counterfactual_value=counterfactual_value,
            difference=counterfactual_value - factual_value,
            factual_values=factual_values,
            counterfactual_values=counterfactual_values,
            noise=noise,
            missing_equation=missing_equation,
            explanation=_explain(query, factual_value, counterfactual_value),
        )

    def _abduct(
        self,
        graph: CausalGraph,
        order: list[str],
        factual: Mapping[str, float]
    ) -> tuple[dict[str, float], dict[str, float]]:
        values: dict[str, float] = {}
        noise: dict[str, float] = {}
        for node_id in order:
            equation = graph.get_node(node_id).equation
            observed = factual.get(node_id)

            if equation is None:
                if observed is not None:
                    values[node_id] = float(observed)
                else:
                    values[node_id] = propagate_strengths(graph, node_id, values)
                continue

            predicted = equation.evaluate(values)
            if observed is None:
                noise[node_id] = self.sample_noise(equation)
                values[node_id] = predicted + noise[node_id]
                continue

            residual = float(observed) - predicted
            if equation.is_stochastic:
                noise[node_id] = residual
            else:
                noise[node_id] = 0.0
                if abs(residual) > self.config.consistency_tolerance:
                    logger.warning(
                        "Observed %s=%s differs from its deterministic equation (%s)",
                        node_id, observed, predicted,
                    )
            values[node_id] = float(observed)
        return values, noise

    def _predict(
        self,
        graph: CausalGraph,
        order: list[str],
        query: CounterfactualQuery,
        factual_values: Mapping[str, float],
        noise: Mapping[str, float]
    ) -> dict[str, float]:
        values: dict[str, float] = {}
        for node_id in order:
            equation = graph.get_node(node_id).equation
            if node_id in query.intervention:
                values[node_id] = float(query.intervention[node_id])
            elif equation is not None:
                values[node_id] = equation.evaluate(values, noise.get(node_id, 0.0))
            elif node_id in query.factual or not graph.parent_ids(node_id):
                values[node_id] = factual_values[node_id]
            else:
                values[node_id] = propagate_strengths(graph, node_id, values)
        return values


def _explain(query: CounterfactualQuery, factual: float, counterfactual: float) -> str:
    setting = ", ".join(f"{k}={v}" for k, v in query.intervention.items())
    return f"Had {setting}, {query.target} would be {counterfactual:.4g} instead of {factual:.4g}"


def evaluate_counterfactual(
    graph: CausalGraph,
    query: CounterfactualQuery | Mapping[str, Any],
    config: CounterfactualConfig | None = None
) -> CounterfactualResult:
    """Evaluate a counterfactual query with a default reasoner."""
    return CounterfactualReasoner(config).evaluate(graph, query)
