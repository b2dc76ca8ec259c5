"""
symbolic_core - Symbolic reasoning core

Two engines with precise correctness contracts and no LLM dependency:

- symbolic_core.logic: Horn-clause interpreter (parser, unification,
  SLD resolution with cut, builtins)
- symbolic_core.causal: causal DAGs, d-separation, adjustment sets,
  interventional and counterfactual evaluation

Example:
    from symbolic_core.logic import LogicEngine

    engine = LogicEngine()
    engine.load_program("parent(tom, bob).")
    engine.prove("parent(tom, bob)")  # True
"""

from .config import CausalConfig, CounterfactualConfig, LogicConfig, Settings, get_settings

__version__ = "0.1.0"

__all__ = [
    "LogicConfig",
    "CausalConfig",
    "CounterfactualConfig",
    "Settings",
    "get_settings",
    "__version__",
]
