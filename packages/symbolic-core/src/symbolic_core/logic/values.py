"""
logic/values.py - Conversion between host values and terms

Used at the boundary with the tool-calling layer, which speaks plain
Python values (numbers, strings, booleans, None, lists, dicts).

    term_from_value({"name": "tom", "age": 42})
    # ['='(name, tom), '='(age, 42)]

    term_to_value(Compound("parent", (Atom("tom"), Var("X"))))
    # {"functor": "parent", "args": ["tom", "?X"]}
"""
from __future__ import annotations

import re
from typing import Any

from .terms import Atom, Compound, Num, PList, Str, Term, Var, make_list

_PLAIN_ATOM = re.compile(r"^[a-z][A-Za-z0-9_]*$")

NIL = Atom("nil")


def term_from_value(value: Any) -> Term:
    """Convert a host value to a term.

    Terms pass through unchanged. Strings that read as plain atoms
    (lowercase identifiers) become atoms, everything else a string term.
    """
    if isinstance(value, (Atom, Var, Num, Str, PList, Compound)):
        return value
    if value is None:
        return NIL
    # bool before int: True is an int
    if isinstance(value, bool):
        return Atom("true" if value else "false")
    if isinstance(value, (int, float)):
        return Num(value)
    if isinstance(value, str):
        return Atom(value) if _PLAIN_ATOM.match(value) else Str(value)
    if isinstance(value, (list, tuple)):
        return make_list(term_from_value(v) for v in value)
    if isinstance(value, dict):
        return make_list(
            Compound("=", (term_from_value(k), term_from_value(v)))
            for k, v in value.items()
        )
    raise TypeError(f"Cannot convert {type(value).__name__} to a term")


def term_to_value(term: Term) -> Any:
    """Convert a term to a host value.

    Lists made only of ``Key = Value`` pairs convert back to dicts.
    Unbound variables become ``"?Name"``.
    """
    results: list[Any] = []
    # ("visit", term) converts a subterm; "list", "dict" and "compound"
    # frames assemble their children from the end of results
    stack: list[tuple[str, Term]] = [("visit", term)]

    while stack:
        kind, t = stack.pop()
        if kind == "list":
            results.append(_pop(results, len(t.elements) + (t.tail is not None)))
        elif kind == "dict":
            values = _pop(results, len(t.elements))
            results.append({_key(e.args[0]): v for e, v in zip(t.elements, values)})
        elif kind == "compound":
            results.append({"functor": t.functor, "args": _pop(results, t.arity)})
        elif isinstance(t, Var):
            results.append(f"?{t.name}")
        elif isinstance(t, Atom):
            results.append(_atom_value(t))
        elif isinstance(t, (Num, Str)):
            results.append(t.value)
        elif isinstance(t, PList):
            if t.tail is None and t.elements and all(_is_pair(e) for e in t.elements):
                stack.append(("dict", t))
                stack.extend(("visit", e.args[1]) for e in reversed(t.elements))
            else:
                stack.append(("list", t))
                if t.tail is not None:
                    stack.append(("visit", t.tail))
                stack.extend(("visit", e) for e in reversed(t.elements))
        elif isinstance(t, Compound):
            stack.append(("compound", t))
            stack.extend(("visit", a) for a in reversed(t.args))
        else:
            raise TypeError(f"Unknown term type: {type(t).__name__}")

    return results[0]


def _pop(results: list[Any], n: int) -> list[Any]:
    if n == 0:
        return []
    items = results[-n:]
    del results[-n:]
    return items


def _atom_value(term: Atom) -> Any:
    if term.value == "nil":
        return None
    if term.value in ("true", "false"):
        return term.value == "true"
    return term.value


def _is_pair(term: Term) -> bool:
    return (
        isinstance(term, Compound)
        and term.indicator == ("=", 2)
        and isinstance(term.args[0], (Atom, Str, Num))
    )


def _key(term: Term) -> Any:
    return term.value
