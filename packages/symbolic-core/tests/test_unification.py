"""
tests/test_unification.py - Unification Tests

Key Properties Tested:
    - Most general unifiers for compounds and lists
    - Occurs check rejects cyclic bindings
    - Input substitutions are never mutated
    - Structural equality never binds
"""

from symbolic_core.logic import (
    Atom,
    Compound,
    Num,
    PList,
    Str,
    Var,
    compose_substitutions,
    make_list,
    occurs_check,
    restrict,
    structurally_equal,
    substitute,
    unify,
)

X, Y, Z, H, T = Var("X"), Var("Y"), Var("Z"), Var("H"), Var("T")
a, b = Atom("a"), Atom("b")


def f(*args):
    return Compound("f", args)


# =============================================================================
# TESTS: BASIC UNIFICATION
# =============================================================================


class TestUnify:
    """Core unification cases."""

    def test_identical_ground_terms(self):
        assert unify(f(a, Num(1)), f(a, Num(1))) == {}

    def test_binds_variables(self):
        assert unify(f(X, Y), f(a, b)) == {"X": a, "Y": b}

    def test_functor_mismatch(self):
        assert unify(f(X), Compound("g", (X,))) is None

    def test_arity_mismatch(self):
        assert unify(f(X), f(X, Y)) is None

    def test_kind_mismatch(self):
        assert unify(Atom("a"), Str("a")) is None
        assert unify(Num(1), Atom("1")) is None

    def test_variable_to_variable(self):
        theta = unify(X, Y)
        assert theta is not None
        assert substitute(X, theta) == substitute(Y, theta)

    def test_shared_variable_consistency(self):
        assert unify(f(X, X), f(a, b)) is None
        assert unify(f(X, X), f(a, a)) == {"X": a}

    def test_chained_bindings(self):
        theta = unify(X, Y)
        theta = unify(Y, a, theta)
        assert substitute(X, theta) == a

    def test_input_not_mutated(self):
        theta = {"Z": b}
        result = unify(X, a, theta)
        assert theta == {"Z": b}
        assert result == {"Z": b, "X": a}

    def test_failure_leaves_input_unchanged(self):
        theta = {"X": a}
        assert unify(f(X, X), f(Y, b), theta) is None
        assert theta == {"X": a}


# =============================================================================
# TESTS: OCCURS CHECK
# =============================================================================


class TestOccursCheck:
    """Cyclic bindings."""

    def test_rejected_by_default(self):
        assert unify(X, f(X)) is None

    def test_allowed_when_disabled(self):
        assert unify(X, f(X), occurs_check=False) == {"X": f(X)}

    def test_through_bindings(self):
        assert unify(X, f(Y), {"Y": Compound("g", (X,))}) is None

    def test_helper(self):
        assert occurs_check(X, f(a, PList((X,))))
        assert not occurs_check(X, f(a, Y))


# =============================================================================
# TESTS: LISTS
# =============================================================================


class TestLists:
    """List unification with tails."""

    def test_head_and_tail(self):
        theta = unify(make_list([H], T), make_list([Num(1), Num(2), Num(3)]))
        assert substitute(H, theta) == Num(1)
        assert substitute(T, theta) == PList((Num(2), Num(3)))

    def test_length_mismatch(self):
        assert unify(make_list([Num(1), Num(2)]), make_list([Num(1), Num(2), Num(3)])) is None

    def test_partial_against_partial(self):
        theta = unify(make_list([X, b]), make_list([a], T))
        assert substitute(X, theta) == a
        assert substitute(T, theta) == PList((b,))

    def test_tail_binds_to_empty(self):
        theta = unify(make_list([a], T), make_list([a]))
        assert substitute(T, theta) == PList(())

    def test_empty_against_nonempty(self):
        assert unify(PList(()), make_list([a])) is None


# =============================================================================
# TESTS: SUBSTITUTION HELPERS
# =============================================================================


class TestHelpers:
    """substitute, structural equality, compose and restrict."""

    def test_substitute_resolves_nested_lists(self):
        theta = {"T": make_list([b])}
        assert substitute(make_list([a], T), theta) == PList((a, b))

    def test_structural_equality_never_binds(self):
        assert structurally_equal(X, X)
        assert not structurally_equal(X, Y)
        assert structurally_equal(X, Y, {"X": a, "Y": a})

    def test_compose(self):
        theta = compose_substitutions({"Y": a}, {"X": f(Y)})
        assert theta == {"X": f(a), "Y": a}

    def test_restrict_drops_unbound_and_foreign(self):
        theta = {"X": f(Y), "Y": a, "_R1_Z": b}
        assert restrict(theta, ["X", "Z"]) == {"X": f(a)}

    def test_substitute_deep_binding_chain(self):
        # X = s(V1), V1 = s(V2), ... far past the interpreter's recursion limit
        theta = {"X": Compound("s", (Var("V1"),))}
        for i in range(1, 3000):
            theta[f"V{i}"] = Compound("s", (Var(f"V{i + 1}"),))
        theta["V3000"] = Num(0)
        term = substitute(X, theta)
        depth = 0
        while isinstance(term, Compound):
            term = term.args[0]
            depth += 1
        assert depth == 3000
        assert term == Num(0)

    def test_substitute_cyclic_binding_terminates(self):
        theta = unify(X, f(X), occurs_check=False)
        assert substitute(X, theta) == f(X)
        assert substitute(f(a, X), theta) == f(a, f(X))

    def test_structural_equality_on_deep_terms(self):
        left = right = Num(0)
        for _ in range(3000):
            left = Compound("s", (left,))
            right = Compound("s", (right,))
        assert structurally_equal(left, right)
        assert not structurally_equal(left, Compound("s", (right,)))
