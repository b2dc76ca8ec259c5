"""
tests/conftest.py - Shared fixtures for logic and causal tests
"""

import pytest

from symbolic_core.causal import CausalGraphBuilder
from symbolic_core.config import LogicConfig
from symbolic_core.logic import KnowledgeBase, Resolver

FAMILY = """
% parent(Parent, Child)
parent(tom, bob).
parent(tom, liz).
parent(bob, ann).
parent(bob, pat).
parent(pat, jim).

grandparent(X, Z) :- parent(X, Y), parent(Y, Z).

ancestor(X, Y) :- parent(X, Y).
ancestor(X, Y) :- parent(X, Z), ancestor(Z, Y).
"""


# =============================================================================
# LOGIC
# =============================================================================


@pytest.fixture
def logic_config():
    return LogicConfig(timeout=None)


@pytest.fixture
def family_program():
    return FAMILY


@pytest.fixture
def family_kb(family_program):
    kb = KnowledgeBase()
    result = kb.load_program(family_program)
    assert result.success
    return kb


@pytest.fixture
def family_resolver(family_kb, logic_config):
    return Resolver(family_kb, logic_config)


# =============================================================================
# CAUSAL
# =============================================================================


@pytest.fixture
def confounder_graph():
    """Z -> X, Z -> Y, X -> Y."""
    return (
        CausalGraphBuilder.create("confounded")
        .treatment("X", "Treatment")
        .outcome("Y", "Outcome")
        .confounder("Z", "Confounder")
        .from_("Z").causes("X")
        .from_("Z").causes("Y")
        .from_("X").causes("Y", strength=0.8)
        .build()
    )


@pytest.fixture
def frontdoor_graph():
    """X -> M -> Y with a latent U confounding X and Y."""
    return (
        CausalGraphBuilder.create("frontdoor")
        .variable("X", "Treatment", "treatment")
        .variable("M", "Mediator", "mediator")
        .variable("Y", "Outcome", "outcome")
        .variable("U", "Confounder", "latent")
        .from_("X").causes("M")
        .from_("M").causes("Y")
        .from_("U").causes("X")
        .from_("U").causes("Y")
        .build()
    )
