"""
causal/inference.py - Causal Inference Engine

Answers questions about the effect of one variable on another:

- is_identifiable(x, y): can the effect be estimated from observational
  data (valid backdoor or front-door adjustment set)?
- compute_interventional_effect: value of a target under do(...),
  propagated through structural equations or signed edge strengths
- estimate_ate: average treatment effect from tabular data, stratified on
  the backdoor adjustment set

Example:
    engine = CausalInferenceEngine(graph)
    engine.is_identifiable("X", "Y").identifiable           # True
    engine.compute_interventional_effect({"target": "Y", "interventions": {"X": 1}})
    engine.estimate_ate("X", "Y", records).effect
"""
from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd

from ..config import CausalConfig
from .analysis import find_backdoor_adjustment, find_frontdoor_adjustment
from .graph import CausalGraph, GraphError
from .types import ATEResult, IdentifiabilityResult, InterventionalResult

logger = logging.getLogger(__name__)


def propagate_strengths(graph: CausalGraph, node_id: str, values: Mapping[str, float]) -> float:
    """Linear effect of a node's parents through signed edge strengths."""
    return sum(
        edge.signed_strength * values.get(edge.source, 0.0)
        for edge in graph.incoming_edges(node_id)
    )


class CausalInferenceEngine:
    """Identification and effect estimation over a fixed causal graph."""

    def __init__(self, graph: CausalGraph, config: CausalConfig | None = None):
        self.graph = graph
        self.config = config or CausalConfig()

    # -------------------------------------------------------------------------
    # Identification
    # -------------------------------------------------------------------------

    def is_identifiable(self, x: str, y: str) -> IdentifiabilityResult:
        """True iff a valid backdoor or front-door adjustment set exists."""
        backdoor = find_backdoor_adjustment(self.graph, x, y, self.config)
        if backdoor is not None and backdoor.is_valid:
            return IdentifiabilityResult(
                identifiable=True,
                method="backdoor",
                adjustment_set=backdoor,
                reason=f"Backdoor adjustment on {backdoor.variables or 'the empty set'}",
            )

        frontdoor = find_frontdoor_adjustment(self.graph, x, y, self.config)
        if frontdoor is not None:
            return IdentifiabilityResult(
                identifiable=True,
                method="frontdoor",
                adjustment_set=frontdoor,
                reason=f"Front-door adjustment through {frontdoor.variables}",
            )

        return IdentifiabilityResult(
            identifiable=False,
            reason=f"No backdoor or front-door adjustment set for {x} -> {y}",
        )

    # -------------------------------------------------------------------------
    # Interventions
    # -------------------------------------------------------------------------

    def compute_interventional_effect(self, query: Mapping[str, Any]) -> InterventionalResult:
        """Value of ``target`` under ``do(interventions)``.

        Args:
            query: ``{"target": str, "interventions": {var: value},
                "baseline": {var: value} (optional),
                "context": {var: value} (optional exogenous values)}``

        Returns:
            effect (target under the interventions), baseline_value (target
            under the baseline interventions, or none), and their difference
        """
        target = query["target"]
        interventions = dict(query.get("interventions", {}))
        baseline = dict(query.get("baseline") or {})
        context = dict(query.get("context") or {})

        for node_id in [target, *interventions]:
            if node_id not in self.graph:
                raise GraphError(f"Node not found: {node_id}")

        values, used_equations = self._propagate(interventions, context)
        baseline_values, _ = self._propagate(baseline, context)
        effect = values[target]
        baseline_value = baseline_values[target]

        adjustment_set = None
        identifiable = True
        for x in interventions:
            result = self.is_identifiable(x, target)
            identifiable = identifiable and result.identifiable
            if adjustment_set is None:
                adjustment_set = result.adjustment_set

        logger.debug("do(%s): %s = %s (baseline %s)", interventions, target, effect, baseline_value)
        return InterventionalResult(
            target=target,
            interventions=interventions,
            effect=effect,
            baseline_value=baseline_value,
            difference=effect - baseline_value,
            confidence=self._path_confidence(interventions, target),
            method="structural" if used_equations else "strength",
            adjustment_set=adjustment_set,
            identifiable=identifiable,
        )

    def _propagate(
        self,
        fixed: Mapping[str, float],
        context: Mapping[str, float]
    ) -> tuple[dict[str, float], bool]:
        """Evaluate every node in topological order with expected noise."""
        values: dict[str, float] = {}
        used_equations = False
        for node_id in self.graph.topological_sort():
            node = self.graph.get_node(node_id)
            if node_id in fixed:
                values[node_id] = float(fixed[node_id])
            elif node.equation is not None:
                equation = node.equation
                expected_noise = (equation.noise_mean or 0.0) if equation.is_stochastic else 0.0
                values[node_id] = equation.evaluate(values, expected_noise)
                used_equations = True
            elif self.graph.parent_ids(node_id):
                values[node_id] = propagate_strengths(self.graph, node_id, values)
            else:
                values[node_id] = float(context.get(node_id, 0.0))
        return values, used_equations

    def _path_confidence(self, sources: Sequence[str], target: str) -> float:
        """Best product of edge confidences over directed paths into target."""
        best = None
        for source in sources:
            for path in self.graph.find_paths(source, target, self.config.max_paths):
                confidence = 1.0
                for edge_id in path.edges:
                    confidence *= self.graph.get_edge(edge_id).confidence
                best = confidence if best is None else max(best, confidence)
        return 1.0 if best is None else best

    # -------------------------------------------------------------------------
    # Average treatment effect
    # -------------------------------------------------------------------------

    def estimate_ate(
        self,
        x: str,
        y: str,
        data: pd.DataFrame | Sequence[Mapping[str, Any]]
    ) -> ATEResult:
        """Average treatment effect of x on y from observational records.

        Treatment is ``x > 0.5``. Records are stratified on the backdoor
        adjustment set when one is needed; strata lacking treated or control
        units are skipped. Falls back to the difference in means when no
        stratum is usable.
        """
        frame = data if isinstance(data, pd.DataFrame) else pd.DataFrame(list(data))
        if x not in frame.columns or y not in frame.columns:
            raise KeyError(f"Data must contain columns {x!r} and {y!r}")

        frame = frame.dropna(subset=[x, y])
        treated = frame[x].astype(float) > 0.5
        n_treated = int(treated.sum())
        n_control = int((~treated).sum())

        if n_treated == 0 or n_control == 0:
            logger.warning("ATE for %s -> %s needs both treated and control records", x, y)
            return ATEResult(treatment=x, outcome=y, effect=math.nan,
                             n_treated=n_treated, n_control=n_control)

        adjustment = find_backdoor_adjustment(self.graph, x, y, self.config)
        variables = adjustment.variables if adjustment is not None else []
        missing = [v for v in variables if v not in frame.columns]

        if variables and not missing:
            effects, weights = [], []
            for _, stratum in frame.groupby(variables):
                is_treated = stratum[x].astype(float) > 0.5
                if is_treated.all() or not is_treated.any():
                    continue
                effects.append(stratum.loc[is_treated, y].mean() - stratum.loc[~is_treated, y].mean())
                weights.append(len(stratum))
            if effects:
                return ATEResult(
                    treatment=x,
                    outcome=y,
                    effect=float(np.average(effects, weights=weights)),
                    method="stratified",
                    adjustment_variables=list(variables),
                    n_treated=n_treated,
                    n_control=n_control,
                    strata_used=len(effects),
                )
            logger.warning("No stratum of %s has both treated and control records; using difference in means", variables)
        elif missing:
            logger.warning("Adjustment variables %s missing from data; using difference in means", missing)
        elif adjustment is None:
            logger.warning("Effect of %s on %s has no backdoor adjustment set; using difference in means", x, y)

        effect = frame.loc[treated, y].mean() - frame.loc[~treated, y].mean()
        return ATEResult(
            treatment=x,
            outcome=y,
            effect=float(effect),
            n_treated=n_treated,
            n_control=n_control,
        )
