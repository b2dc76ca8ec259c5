"""
logic/builtins.py - Builtin Predicate Library

Builtins are resolved by (name, arity) against a fixed table before any
clause lookup. Each builtin takes the goal arguments and the current
substitution and returns the list of substitutions it succeeds with
(empty on failure, several for nondeterministic predicates like member/2).

Categories:
- Arithmetic: is/2 and the comparisons <, >, =<, >=, =:=, =\\=
- Unification and identity: =, \\=, ==, \\==
- Lists: member/2, append/3, length/2, reverse/2, is_list/1
- Type checks: var, nonvar, atom, number, integer, float, atomic, compound, string
- Control: true, fail, false, \\+, not, call/1..8, findall/3, ',', ';', '->', !

Arithmetic errors (division by zero, unbound operands) never escape: the
builtin simply fails and resolution backtracks.
"""
from __future__ import annotations

import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterator, NamedTuple

from .terms import (
    EMPTY_LIST,
    Atom,
    Compound,
    Num,
    PList,
    Str,
    Term,
    Var,
    make_list,
    to_goal,
)
from .unification import Substitution, deref, structurally_equal, substitute, unify

logger = logging.getLogger(__name__)


class ArithmeticFailure(Exception):
    """Raised while evaluating an arithmetic expression that has no value."""


@dataclass
class BuiltinResult:
    """Outcome of a builtin call."""
    success: bool
    substitutions: list[Substitution] = field(default_factory=list)


SolveFn = Callable[[list[Term], Substitution], Iterator[Substitution]]


@dataclass
class BuiltinContext:
    """Services a builtin may need from the running resolver.

    ``solve`` runs a nested goal list (used by negation, findall and the
    control constructs) and ``fresh_var`` creates variables that cannot
    clash with any variable of the current query.
    """
    solve: SolveFn
    fresh_var: Callable[[], Var]
    occurs_check: bool = True
    enable_negation: bool = True


BuiltinFn = Callable[[tuple[Term, ...], Substitution, BuiltinContext], list[Substitution]]

BUILTINS: dict[tuple[str, int], BuiltinFn] = {}


def builtin(name: str, *arities: int):
    """Register a builtin implementation under name/arity."""
    def decorator(fn: BuiltinFn) -> BuiltinFn:
        for arity in arities:
            BUILTINS[(name, arity)] = fn
        return fn
    return decorator


def is_builtin(name: str, arity: int) -> bool:
    """Check whether name/arity is handled by the builtin table."""
    return (name, arity) in BUILTINS


def get_builtin_list() -> list[str]:
    """Names of all builtin predicates, without duplicates."""
    return sorted({name for name, _ in BUILTINS})


def execute_builtin(
    goal: Term,
    subst: Substitution | None = None,
    context: BuiltinContext | None = None
) -> BuiltinResult:
    """Run a single builtin goal outside of a full resolution.

    Control constructs that need to prove sub-goals use a resolver over an
    empty knowledge base unless a context is supplied.

    Example:
        execute_builtin(parse_term("X is 10 / 2").value)
        # BuiltinResult(success=True, substitutions=[{"X": Num(5)}])
    """
    subst = subst or {}
    goal = to_goal(deref(goal, subst))
    if not isinstance(goal, Compound) or goal.indicator not in BUILTINS:
        raise ValueError(f"Not a builtin goal: {goal}")
    if context is None:
        context = _default_context()
    results = BUILTINS[goal.indicator](goal.args, subst, context)
    return BuiltinResult(success=bool(results), substitutions=results)


def _default_context() -> BuiltinContext:
    from .knowledge_base import KnowledgeBase
    from .resolver import Resolver

    return Resolver(KnowledgeBase()).builtin_context()


def _unify(a: Term, b: Term, subst: Substitution, ctx: BuiltinContext) -> list[Substitution]:
    theta = unify(a, b, subst, occurs_check=ctx.occurs_check)
    return [] if theta is None else [theta]


# =============================================================================
# ARITHMETIC
# =============================================================================

Number = int | float

_CONSTANTS = {"pi": math.pi, "e": math.e, "inf": math.inf}


def _int_args(op: str, a: Number, b: Number) -> None:
    if not (isinstance(a, int) and isinstance(b, int)):
        raise ArithmeticFailure(f"{op} needs integer operands")


def _divide(a: Number, b: Number) -> Number:
    if b == 0:
        raise ArithmeticFailure("division by zero")
    if isinstance(a, int) and isinstance(b, int) and a % b == 0:
        return a // b
    return a / b


def _int_divide(a: Number, b: Number) -> Number:
    _int_args("//", a, b)
    if b == 0:
        raise ArithmeticFailure("integer division by zero")
    # Truncates toward zero
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _modulo(a: Number, b: Number) -> Number:
    _int_args("mod", a, b)
    if b == 0:
        raise ArithmeticFailure("modulo by zero")
    return a % b


def _power(a: Number, b: Number) -> Number:
    result = a ** b
    if isinstance(result, complex):
        raise ArithmeticFailure(f"{a} ** {b} has no real value")
    return result


_BINARY_OPS: dict[str, Callable[[Number, Number], Number]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "//": _int_divide,
    "mod": _modulo,
    "min": min,
    "max": max,
    "**": _power,
    "^": _power,
}

_UNARY_OPS: dict[str, Callable[[Number], Number]] = {
    "-": lambda a: -a,
    "+": lambda a: a,
    "abs": abs,
}


class _Apply(NamedTuple):
    """Pending operator application on the evaluation stack."""
    fn: Callable[..., Number]
    arity: int


def eval_arith(term: Term, subst: Substitution) -> Number:
    """Evaluate an arithmetic expression under a substitution.

    Operands are evaluated left to right on an explicit stack, so deeply
    nested expressions such as a long ``1 + 1 + ... + 1`` never hit the
    Python recursion limit.

    Raises:
        ArithmeticFailure: unbound variable, unknown operator, non-numeric
            operand, or a zero divisor
    """
    values: list[Number] = []
    stack: list[Term | _Apply] = [term]

    while stack:
        item = stack.pop()
        if isinstance(item, _Apply):
            operands = values[-item.arity:]
            del values[-item.arity:]
            try:
                values.append(item.fn(*operands))
            except (ZeroDivisionError, OverflowError, ValueError) as e:
                raise ArithmeticFailure(str(e)) from e
            continue

        t = deref(item, subst)
        if isinstance(t, Num):
            values.append(t.value)
        elif isinstance(t, Var):
            raise ArithmeticFailure(f"unbound variable {t.name} in arithmetic")
        elif isinstance(t, Atom) and t.value in _CONSTANTS:
            values.append(_CONSTANTS[t.value])
        elif isinstance(t, Compound):
            if t.arity == 2 and t.functor in _BINARY_OPS:
                stack.append(_Apply(_BINARY_OPS[t.functor], 2))
            elif t.arity == 1 and t.functor in _UNARY_OPS:
                stack.append(_Apply(_UNARY_OPS[t.functor], 1))
            else:
                raise ArithmeticFailure(f"unknown arithmetic function {t.functor}/{t.arity}")
            stack.extend(reversed(t.args))
        else:
            raise ArithmeticFailure(f"not a number: {t}")

    return values[0]


@builtin("is", 2)
def _is(args, subst, ctx):
    try:
        value = eval_arith(args[1], subst)
    except ArithmeticFailure as e:
        logger.debug("is/2 failed: %s", e)
        return []
    return _unify(args[0], Num(value), subst, ctx)


_COMPARISONS: dict[str, Callable[[Number, Number], bool]] = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "=<": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
    "=:=": lambda a, b: a == b,
    "=\\=": lambda a, b: a != b,
}


def _make_comparison(op: str) -> BuiltinFn:
    compare = _COMPARISONS[op]

    def comparison(args, subst, ctx):
        try:
            a = eval_arith(args[0], subst)
            b = eval_arith(args[1], subst)
        except ArithmeticFailure as e:
            logger.debug("%s/2 failed: %s", op, e)
            return []
        return [subst] if compare(a, b) else []

    return comparison


for _op in _COMPARISONS:
    BUILTINS[(_op, 2)] = _make_comparison(_op)


# =============================================================================
# UNIFICATION AND IDENTITY
# =============================================================================

@builtin("=", 2)
def _equals(args, subst, ctx):
    return _unify(args[0], args[1], subst, ctx)


@builtin("\\=", 2)
def _not_unifiable(args, subst, ctx):
    return [] if _unify(args[0], args[1], subst, ctx) else [subst]


@builtin("==", 2)
def _identical(args, subst, ctx):
    return [subst] if structurally_equal(args[0], args[1], subst) else []


@builtin("\\==", 2)
def _not_identical(args, subst, ctx):
    return [] if structurally_equal(args[0], args[1], subst) else [subst]


# =============================================================================
# LISTS
# =============================================================================

def list_items(term: Term, subst: Substitution) -> tuple[list[Term], Term]:
    """Walk a (possibly partial) list.

    Returns the elements found and the final tail: EMPTY_LIST for a proper
    list, an unbound variable for a partial list, anything else otherwise.
    """
    items: list[Term] = []
    term = deref(term, subst)
    while isinstance(term, PList) and not term.is_empty:
        items.extend(term.elements)
        if term.tail is None:
            return items, EMPTY_LIST
        term = deref(term.tail, subst)
    return items, term


def _proper_list(term: Term, subst: Substitution) -> list[Term] | None:
    items, tail = list_items(term, subst)
    if isinstance(tail, PList) and tail.is_empty:
        return items
    return None


@builtin("member", 2)
def _member(args, subst, ctx):
    items, _ = list_items(args[1], subst)
    results = []
    for item in items:
        results.extend(_unify(args[0], item, subst, ctx))
    return results


@builtin("append", 3)
def _append(args, subst, ctx):
    front = _proper_list(args[0], subst)
    if front is not None:
        return _unify(args[2], make_list(front, args[1]), subst, ctx)

    whole = _proper_list(args[2], subst)
    if whole is None:
        logger.debug("append/3: arguments insufficiently instantiated")
        return []

    results = []
    for i in range(len(whole) + 1):
        theta = unify(args[0], PList(tuple(whole[:i])), subst, ctx.occurs_check)
        if theta is not None:
            theta = unify(args[1], make_list(whole[i:]), theta, ctx.occurs_check)
        if theta is not None:
            results.append(theta)
    return results


@builtin("length", 2)
def _length(args, subst, ctx):
    items, tail = list_items(args[0], subst)
    if isinstance(tail, PList):
        return _unify(args[1], Num(len(items)), subst, ctx)
    if not isinstance(tail, Var):
        return []

    n = deref(args[1], subst)
    if not (isinstance(n, Num) and isinstance(n.value, int)):
        logger.debug("length/2: open list needs an integer length")
        return []
    missing = n.value - len(items)
    if missing < 0:
        return []
    fresh = tuple(ctx.fresh_var() for _ in range(missing))
    return _unify(tail, PList(fresh), subst, ctx)


@builtin("reverse", 2)
def _reverse(args, subst, ctx):
    items = _proper_list(args[0], subst)
    if items is not None:
        return _unify(args[1], PList(tuple(reversed(items))), subst, ctx)
    items = _proper_list(args[1], subst)
    if items is not None:
        return _unify(args[0], PList(tuple(reversed(items))), subst, ctx)
    return []


@builtin("is_list", 1)
def _is_list(args, subst, ctx):
    return [subst] if _proper_list(args[0], subst) is not None else []


# =============================================================================
# TYPE CHECKS
# =============================================================================

def _type_check(predicate: Callable[[Term], bool]) -> BuiltinFn:
    def check(args, subst, ctx):
        return [subst] if predicate(deref(args[0], subst)) else []
    return check


_TYPE_CHECKS: dict[str, Callable[[Term], bool]] = {
    "var": lambda t: isinstance(t, Var),
    "nonvar": lambda t: not isinstance(t, Var),
    "atom": lambda t: isinstance(t, Atom),
    "number": lambda t: isinstance(t, Num),
    "integer": lambda t: isinstance(t, Num) and isinstance(t.value, int),
    "float": lambda t: isinstance(t, Num) and isinstance(t.value, float),
    "atomic": lambda t: isinstance(t, (Atom, Num, Str)),
    "compound": lambda t: isinstance(t, Compound) or (isinstance(t, PList) and not t.is_empty),
    "string": lambda t: isinstance(t, Str),
}

for _name, _predicate in _TYPE_CHECKS.items():
    BUILTINS[(_name, 1)] = _type_check(_predicate)


# =============================================================================
# CONTROL
# =============================================================================

@builtin("true", 0)
@builtin("!", 0)
def _true(args, subst, ctx):
    return [subst]


@builtin("fail", 0)
@builtin("false", 0)
def _fail(args, subst, ctx):
    return []


def add_call_args(goal: Term, extra: tuple[Term, ...]) -> Compound | None:
    """Goal for call/N: append extra arguments. None if goal is not callable."""
    goal = to_goal(goal)
    if not isinstance(goal, Compound):
        return None
    if not extra:
        return goal
    return Compound(goal.functor, goal.args + extra)


@builtin("call", *range(1, 9))
def _call(args, subst, ctx):
    goal = add_call_args(substitute(args[0], subst), args[1:])
    if goal is None:
        logger.debug("call/%d: goal is not callable", len(args))
        return []
    return list(ctx.solve([goal], subst))


@builtin("\\+", 1)
@builtin("not", 1)
def _negation(args, subst, ctx):
    if not ctx.enable_negation:
        logger.warning("Negation is disabled; \\+ fails")
        return []
    goal = to_goal(substitute(args[0], subst))
    for _ in ctx.solve([goal], subst):
        return []
    return [subst]


@builtin("findall", 3)
def _findall(args, subst, ctx):
    template, goal = args[0], to_goal(substitute(args[1], subst))
    found = [substitute(template, theta) for theta in ctx.solve([goal], subst)]
    return _unify(args[2], PList(tuple(found)), subst, ctx)


@builtin(",", 2)
def _conjunction(args, subst, ctx):
    return list(ctx.solve([to_goal(args[0]), to_goal(args[1])], subst))


@builtin(";", 2)
def _disjunction(args, subst, ctx):
    left = deref(args[0], subst)
    if isinstance(left, Compound) and left.indicator == ("->", 2):
        return _if_then_else(left.args[0], left.args[1], args[1], subst, ctx)
    branches = (ctx.solve([to_goal(args[0])], subst), ctx.solve([to_goal(args[1])], subst))
    return list(itertools.chain.from_iterable(branches))


@builtin("->", 2)
def _if_then(args, subst, ctx):
    return _if_then_else(args[0], args[1], Atom("fail"), subst, ctx)


def _if_then_else(cond, then, otherwise, subst, ctx):
    for theta in ctx.solve([to_goal(cond)], subst):
        return list(ctx.solve([to_goal(then)], theta))
    return list(ctx.solve([to_goal(otherwise)], subst))
