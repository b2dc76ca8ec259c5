"""
causal/types.py - Data model for causal graphs

Nodes, edges and structural equations are Pydantic v2 models, so invalid
graph data (out-of-range strengths, unknown variable types) is rejected at
construction. Analysis results are plain dataclasses with ``to_dict``.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field, field_validator

VariableType = Literal["treatment", "outcome", "confounder", "mediator", "latent", "observed"]
RelationType = Literal["causes", "prevents", "enables", "inhibits", "confounds", "mediates"]
NoiseDistribution = Literal["gaussian", "uniform", "none"]

# Relations whose strength acts with a negative sign during propagation
NEGATIVE_RELATIONS = frozenset({"prevents", "inhibits"})


def parse_polynomial_term(key: str) -> list[tuple[str, int | float]]:
    """Split a polynomial coefficient key into (variable, power) factors.

    "X^2" -> [("X", 2)], "X" -> [("X", 1)], "X*Z^2" -> [("X", 1), ("Z", 2)]
    """
    factors = []
    for factor in key.split("*"):
        var, _, power = factor.partition("^")
        exponent = float(power) if power.strip() else 1.0
        if exponent.is_integer():
            exponent = int(exponent)
        factors.append((var.strip(), exponent))
    return factors


# =============================================================================
# GRAPH ELEMENTS
# =============================================================================

class StructuralEquation(BaseModel):
    """Equation defining a variable as a function of its parents.

    Linear:      value = Σ coefficients[v] * v + intercept + noise
    Polynomial:  keys may be ``V``, ``V^N`` or products ``A*B``
    """

    type: Literal["linear", "polynomial"] = "linear"
    coefficients: dict[str, float] = Field(default_factory=dict)
    intercept: float = 0.0
    noise_distribution: NoiseDistribution | None = None
    noise_mean: float | None = None
    noise_std: float | None = Field(default=None, gt=0.0)

    @field_validator("coefficients")
    @classmethod
    def validate_keys(cls, v: dict[str, float]) -> dict[str, float]:
        for key in v:
            if any(not var for var, _ in parse_polynomial_term(key)):
                raise ValueError(f"Malformed coefficient key: {key!r}")
        return v

    @property
    def is_stochastic(self) -> bool:
        return self.noise_distribution in ("gaussian", "uniform")

    def variables(self) -> list[str]:
        """Names of the variables the equation reads."""
        names: dict[str, None] = {}
        for key in self.coefficients:
            if self.type == "linear":
                names.setdefault(key.strip(), None)
            else:
                for var, _ in parse_polynomial_term(key):
                    names.setdefault(var, None)
        return list(names)

    def evaluate(self, inputs: Mapping[str, float], noise: float = 0.0) -> float:
        """Value of the equation for the given parent values.

        Variables missing from inputs count as 0.

        Raises:
            ValueError: a polynomial factor has no real value (a negative
                base with a fractional power, or zero to a negative power)
        """
        total = 0.0
        for key, coefficient in self.coefficients.items():
            if self.type == "linear":
                total += coefficient * inputs.get(key.strip(), 0.0)
            else:
                term = 1.0
                for var, power in parse_polynomial_term(key):
                    term *= _real_power(var, inputs.get(var, 0.0), power)
                total += coefficient * term
        return total + self.intercept + noise

    model_config = {"frozen": True}


def _real_power(var: str, base: float, power: int | float) -> float:
    if base < 0 and isinstance(power, float):
        raise ValueError(f"{var}^{power} has no real value for {var}={base}")
    if base == 0 and power < 0:
        raise ValueError(f"{var}^{power} is undefined for {var}=0")
    return base ** power


class CausalNode(BaseModel):
    """A variable in the causal graph."""

    id: str = Field(..., min_length=1)
    name: str
    variable_type: VariableType = "observed"
    equation: StructuralEquation | None = None
    description: str | None = None

    @property
    def is_latent(self) -> bool:
        return self.variable_type == "latent"


class CausalEdge(BaseModel):
    """A directed causal relation source -> target."""

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    relation_type: RelationType = "causes"
    strength: float = Field(default=1.0, ge=-1.0, le=1.0)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    mechanism: str | None = None

    @property
    def signed_strength(self) -> float:
        if self.relation_type in NEGATIVE_RELATIONS:
            return -abs(self.strength)
        return self.strength


# =============================================================================
# ANALYSIS RESULTS
# =============================================================================

@dataclass
class CausalPath:
    """A path between two nodes, as node ids in order."""
    nodes: list[str]
    edges: list[str] = field(default_factory=list)
    strength: float = 1.0
    directed: bool = True

    def __len__(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DSeparationResult:
    """Outcome of a d-separation test."""
    separated: bool
    conditioning_set: list[str] = field(default_factory=list)
    blocked_paths: list[list[str]] = field(default_factory=list)
    open_paths: list[list[str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AdjustmentSet:
    """Variables to adjust for when estimating the effect of treatment on outcome."""
    variables: list[str]
    type: Literal["backdoor", "frontdoor"]
    treatment: str
    outcome: str
    is_valid: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class IdentifiabilityResult:
    identifiable: bool
    method: Literal["backdoor", "frontdoor"] | None = None
    adjustment_set: AdjustmentSet | None = None
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class InterventionalResult:
    """Value of a target under do(interventions), compared to no intervention."""
    target: str
    interventions: dict[str, float]
    effect: float
    baseline_value: float = 0.0
    difference: float = 0.0
    confidence: float = 1.0
    method: Literal["structural", "strength"] = "structural"
    adjustment_set: AdjustmentSet | None = None
    identifiable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ATEResult:
    """Average treatment effect estimate."""
    treatment: str
    outcome: str
    effect: float
    method: Literal["stratified", "difference_in_means"] = "difference_in_means"
    adjustment_variables: list[str] = field(default_factory=list)
    n_treated: int = 0
    n_control: int = 0
    strata_used: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CounterfactualQuery:
    """What would ``target`` have been under ``intervention``, given ``factual``?"""
    target: str
    intervention: dict[str, float]
    factual: dict[str, float] = field(default_factory=dict)
    question: str = ""


@dataclass
class CounterfactualResult:
    """Outcome of abduction, action and prediction for one target."""
    target: str
    factual_value: float
    counterfactual_value: float
    difference: float = 0.0
    factual_values: dict[str, float] = field(default_factory=dict)
    counterfactual_values: dict[str, float] = field(default_factory=dict)
    noise: dict[str, float] = field(default_factory=dict)
    missing_equation: bool = False
    explanation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
