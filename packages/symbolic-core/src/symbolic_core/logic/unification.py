"""
logic/unification.py - Unification Algorithm

Implements first-order unification over the term algebra.
Unification finds the most general substitution that makes two terms
identical.

Key operations:
- unify(t1, t2): Find substitution θ such that t1θ = t2θ
- substitute(t, θ): Apply substitution to term (transitively)
- structurally_equal(t1, t2, θ): The non-binding ``==`` comparison
- occurs_check(var, term): Check for circular references

Substitutions are plain dicts mapping variable names to terms. They are
treated as immutable values: every successful binding returns a new dict,
so earlier substitutions stay valid for backtracking.
"""
from __future__ import annotations

from .terms import EMPTY_LIST, Compound, PList, Term, Var, make_list

# Type alias for substitution
Substitution = dict[str, Term]


def deref(term: Term, theta: Substitution) -> Term:
    """Follow variable bindings until reaching a non-variable or an unbound variable."""
    while isinstance(term, Var) and term.name in theta:
        term = theta[term.name]
    return term


def unify(
    t1: Term,
    t2: Term,
    theta: Substitution | None = None,
    occurs_check: bool = True
) -> Substitution | None:
    """Unify two terms and return most general unifier (MGU).

    Args:
        t1: First term
        t2: Second term
        theta: Initial substitution (default: empty). Never mutated.
        occurs_check: Reject bindings that would create cyclic terms

    Returns:
        Extended substitution, or None if unification fails

    Example:
        t1 = Compound("f", (Var("X"), Var("Y")))
        t2 = Compound("f", (Atom("a"), Atom("b")))
        unify(t1, t2)  # {"X": Atom("a"), "Y": Atom("b")}
    """
    bindings = {} if theta is None else theta
    copied = False
    stack = [(t1, t2)]

    while stack:
        a, b = stack.pop()
        a = deref(a, bindings)
        b = deref(b, bindings)

        if a is b:
            continue

        # Variable cases
        if isinstance(a, Var) or isinstance(b, Var):
            if isinstance(a, Var) and isinstance(b, Var) and a.name == b.name:
                continue
            var, value = (a, b) if isinstance(a, Var) else (b, a)
            if occurs_check and _occurs(var.name, value, bindings):
                return None
            if not copied:
                bindings = dict(bindings)
                copied = True
            bindings[var.name] = value
            continue

        if isinstance(a, Compound) and isinstance(b, Compound):
            if a.functor != b.functor or a.arity != b.arity:
                return None
            stack.extend(zip(reversed(a.args), reversed(b.args)))
            continue

        if isinstance(a, PList) and isinstance(b, PList):
            pairs = _list_pairs(a, b)
            if pairs is None:
                return None
            stack.extend(reversed(pairs))
            continue

        # Atoms, numbers, strings: equal values of the same kind
        if type(a) is not type(b) or a != b:
            return None

    return bindings


def _list_rest(lst: PList, n: int) -> Term:
    """The list remaining after dropping the first n elements."""
    if n < len(lst.elements):
        return PList(lst.elements[n:], lst.tail)
    return lst.tail if lst.tail is not None else EMPTY_LIST


def _list_pairs(a: PList, b: PList) -> list[tuple[Term, Term]] | None:
    """Pairs to unify for two lists, or None if their shapes cannot match."""
    n = min(len(a.elements), len(b.elements))
    if n == 0:
        # One side is [] (tails are folded into elements by make_list)
        if a.is_empty and b.is_empty:
            return []
        return None
    pairs = list(zip(a.elements[:n], b.elements[:n]))
    pairs.append((_list_rest(a, n), _list_rest(b, n)))
    return pairs


def _occurs(name: str, term: Term, theta: Substitution) -> bool:
    stack = [term]
    while stack:
        t = deref(stack.pop(), theta)
        if isinstance(t, Var):
            if t.name == name:
                return True
        elif isinstance(t, Compound):
            stack.extend(t.args)
        elif isinstance(t, PList):
            stack.extend(t.elements)
            if t.tail is not None:
                stack.append(t.tail)
    return False


def occurs_check(var: Var, term: Term, theta: Substitution | None = None) -> bool:
    """Check if variable occurs in term (prevents infinite structures).

    Returns True if var appears in term, which would create a circular
    reference like X = f(X).
    """
    return _occurs(var.name, term, theta or {})


def _resolve(term: Term, theta: Substitution, active: set[str]) -> tuple[Term, list[str]]:
    """Dereference, stopping at a variable already being expanded."""
    names = []
    while isinstance(term, Var) and term.name in theta and term.name not in active:
        names.append(term.name)
        term = theta[term.name]
    return term, names


def substitute(term: Term, theta: Substitution) -> Term:
    """Apply substitution to term.

    Replaces all variables in term with their bindings in theta,
    following chains of variable-to-variable bindings. Works on an explicit
    stack, so term depth is not limited by Python recursion. A cyclic
    binding (only possible with the occurs check off) is left as the
    variable where the cycle closes: X = f(X) substitutes to f(X).
    """
    results: list[Term] = []
    active: set[str] = set()
    # ("visit", term) expands a subterm, ("build", term, names) rebuilds it
    stack: list[tuple] = [("visit", term)]

    while stack:
        frame = stack.pop()
        if frame[0] == "build":
            _, t, names = frame
            if isinstance(t, Compound):
                n = len(t.args)
                args = tuple(results[-n:])
                del results[-n:]
                results.append(Compound(t.functor, args))
            else:
                n = len(t.elements) + (t.tail is not None)
                parts = results[-n:]
                del results[-n:]
                if t.tail is not None:
                    results.append(make_list(parts[:-1], parts[-1]))
                else:
                    results.append(make_list(parts))
            active.difference_update(names)
            continue

        t, names = _resolve(frame[1], theta, active)
        if isinstance(t, Compound) and t.args:
            active.update(names)
            stack.append(("build", t, names))
            stack.extend(("visit", a) for a in reversed(t.args))
        elif isinstance(t, PList) and not t.is_empty:
            active.update(names)
            stack.append(("build", t, names))
            if t.tail is not None:
                stack.append(("visit", t.tail))
            stack.extend(("visit", e) for e in reversed(t.elements))
        else:
            results.append(t)

    return results[0]


def structurally_equal(t1: Term, t2: Term, theta: Substitution | None = None) -> bool:
    """Structural identity (``==``): compares shape, never binds.

    Two distinct unbound variables are not equal, even though they
    would unify.
    """
    theta = theta or {}
    return substitute(t1, theta) == substitute(t2, theta)


def compose_substitutions(
    theta1: Substitution,
    theta2: Substitution
) -> Substitution:
    """Compose two substitutions.

    (θ1 ∘ θ2)(t) = θ1(θ2(t))

    Args:
        theta1: First substitution (applied last)
        theta2: Second substitution (applied first)

    Returns:
        Composed substitution
    """
    result = {}

    # Apply theta1 to all values in theta2
    for var, term in theta2.items():
        result[var] = substitute(term, theta1)

    # Add bindings from theta1 not in theta2
    for var, term in theta1.items():
        if var not in result:
            result[var] = term

    return result


def restrict(theta: Substitution, names) -> Substitution:
    """Fully resolved bindings for the given variable names only.

    Variables that remain unbound are left out.
    """
    result = {}
    for name in names:
        value = substitute(Var(name), theta)
        if value != Var(name):
            result[name] = value
    return result
