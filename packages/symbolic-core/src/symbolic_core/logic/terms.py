"""
logic/terms.py - Term Algebra for Logic Programming

Implements the closed set of term structures shared by the parser,
the unifier and the resolver:
- Atom: Symbolic constants (e.g., tom, '[]', '!')
- Var: Logical variables (e.g., X, _Name)
- Num: Integer or floating point numbers
- Str: Double-quoted strings
- PList: Lists with an optional tail ([a, b | T])
- Compound: Functor applied to arguments (e.g., parent(tom, bob))
- Clause: Horn clause (head :- body)

All terms are immutable. Equality is structural; two variables are
equal only when they have the same name.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Union


class TermBase(ABC):
    """Base class for all term types."""

    @abstractmethod
    def is_ground(self) -> bool:
        """Return True if term contains no variables."""
        pass

    @abstractmethod
    def variables(self) -> set[str]:
        """Return set of variable names in term."""
        pass

    def __str__(self) -> str:
        return format_term(self)


@dataclass(frozen=True)
class Var(TermBase):
    """Logical variable.

    By convention, variable names start with an uppercase letter or an
    underscore (X, Person, _Tmp).
    """
    name: str

    def is_ground(self) -> bool:
        return False

    def variables(self) -> set[str]:
        return {self.name}

    def __repr__(self) -> str:
        return f"Var({self.name!r})"

    def __hash__(self) -> int:
        return hash(("Var", self.name))

    def __eq__(self, other) -> bool:
        return isinstance(other, Var) and self.name == other.name


@dataclass(frozen=True)
class Atom(TermBase):
    """Symbolic constant."""
    value: str

    def is_ground(self) -> bool:
        return True

    def variables(self) -> set[str]:
        return set()

    def __repr__(self) -> str:
        return f"Atom({self.value!r})"

    def __hash__(self) -> int:
        return hash(("Atom", self.value))

    def __eq__(self, other) -> bool:
        return isinstance(other, Atom) and self.value == other.value


@dataclass(frozen=True)
class Num(TermBase):
    """Numeric constant (int for integral values, float otherwise)."""
    value: int | float

    def is_ground(self) -> bool:
        return True

    def variables(self) -> set[str]:
        return set()

    def __repr__(self) -> str:
        return f"Num({self.value!r})"

    def __hash__(self) -> int:
        return hash(("Num", self.value))

    def __eq__(self, other) -> bool:
        return isinstance(other, Num) and self.value == other.value


@dataclass(frozen=True)
class Str(TermBase):
    """String constant ("hello world")."""
    value: str

    def is_ground(self) -> bool:
        return True

    def variables(self) -> set[str]:
        return set()

    def __repr__(self) -> str:
        return f"Str({self.value!r})"

    def __hash__(self) -> int:
        return hash(("Str", self.value))

    def __eq__(self, other) -> bool:
        return isinstance(other, Str) and self.value == other.value


@dataclass(frozen=True)
class PList(TermBase):
    """List term.

    ``elements`` holds the leading items, ``tail`` the remainder for
    partial lists such as ``[H|T]``. A proper list has ``tail=None``.
    Build lists through ``make_list`` so nested tails stay flattened.
    """
    elements: tuple[Term, ...] = ()
    tail: Term | None = None

    @property
    def is_empty(self) -> bool:
        return not self.elements and self.tail is None

    def is_ground(self) -> bool:
        return not term_variables(self)

    def variables(self) -> set[str]:
        return set(term_variables(self))

    def __repr__(self) -> str:
        if self.tail is None:
            return f"PList({list(self.elements)!r})"
        return f"PList({list(self.elements)!r}, tail={self.tail!r})"

    def __hash__(self) -> int:
        return hash(("PList", self.elements, self.tail))

    def __eq__(self, other) -> bool:
        return isinstance(other, PList) and _same_structure(self, other)


@dataclass(frozen=True)
class Compound(TermBase):
    """Compound term with functor and arguments.

    Example:
        # parent(tom, X)
        term = Compound("parent", (Atom("tom"), Var("X")))
    """
    functor: str
    args: tuple[Term, ...] = field(default_factory=tuple)

    @property
    def arity(self) -> int:
        """Number of arguments."""
        return len(self.args)

    @property
    def indicator(self) -> tuple[str, int]:
        """Predicate indicator used for indexing: (functor, arity)."""
        return (self.functor, len(self.args))

    def is_ground(self) -> bool:
        return not term_variables(self)

    def variables(self) -> set[str]:
        return set(term_variables(self))

    def __repr__(self) -> str:
        return f"Compound({self.functor!r}, {list(self.args)!r})"

    def __hash__(self) -> int:
        return hash(("Compound", self.functor, self.args))

    def __eq__(self, other) -> bool:
        return isinstance(other, Compound) and _same_structure(self, other)


def _same_structure(a: TermBase, b: TermBase) -> bool:
    """Structural equality without recursion."""
    stack = [(a, b)]
    while stack:
        x, y = stack.pop()
        if x is y:
            continue
        if isinstance(x, Compound):
            if not isinstance(y, Compound) or x.functor != y.functor or len(x.args) != len(y.args):
                return False
            stack.extend(zip(x.args, y.args))
        elif isinstance(x, PList):
            if not isinstance(y, PList) or len(x.elements) != len(y.elements):
                return False
            if (x.tail is None) != (y.tail is None):
                return False
            stack.extend(zip(x.elements, y.elements))
            if x.tail is not None:
                stack.append((x.tail, y.tail))
        elif x != y:
            return False
    return True


# Type alias for any term
Term = Union[Atom, Var, Num, Str, PList, Compound]

EMPTY_LIST = PList(())


def make_list(elements, tail: Term | None = None) -> Term:
    """Build a list term, folding list-valued tails into the elements.

    ``make_list([], T)`` is just ``T``; ``make_list([a], [b, c])`` is
    ``[a, b, c]``; an empty list tail is dropped.
    """
    elements = tuple(elements)
    while isinstance(tail, PList):
        elements = elements + tail.elements
        tail = tail.tail
    if not elements and tail is not None:
        return tail
    return PList(elements, tail)


def to_goal(term: Term) -> Term:
    """Normalise a callable term: atoms become zero-arity compounds."""
    if isinstance(term, Atom):
        return Compound(term.value, ())
    return term


@dataclass(frozen=True)
class Clause:
    """Horn clause: head :- body.

    - If body is empty: fact (head is unconditionally true)
    - If body is non-empty: rule (head is true if all body goals are true)
    """
    head: Compound
    body: tuple[Term, ...] = ()

    @property
    def is_fact(self) -> bool:
        """True if this is a fact (no body)."""
        return len(self.body) == 0

    @property
    def is_rule(self) -> bool:
        """True if this is a rule (has body)."""
        return len(self.body) > 0

    @property
    def indicator(self) -> tuple[str, int]:
        return self.head.indicator

    def is_ground(self) -> bool:
        if not self.head.is_ground():
            return False
        return all(t.is_ground() for t in self.body)

    def variables(self) -> set[str]:
        """All variables in the clause."""
        result = self.head.variables()
        for t in self.body:
            result.update(t.variables())
        return result

    def rename_variables(self, prefix: str) -> Clause:
        """Create copy with renamed variables (alpha-conversion)."""
        var_map = {v: Var(f"{prefix}{v}") for v in self.variables()}
        if not var_map:
            return self
        return Clause(
            rename_term(self.head, var_map),
            tuple(rename_term(t, var_map) for t in self.body)
        )

    def __str__(self) -> str:
        if self.is_fact:
            return f"{format_term(self.head)}."
        body_str = ", ".join(format_term(t) for t in self.body)
        return f"{format_term(self.head)} :- {body_str}."


def rename_term(term: Term, var_map: dict[str, Var]) -> Term:
    """Rename variables in a term."""
    results: list[Term] = []
    # A popped Term is expanded; a popped (term,) tuple is rebuilt from results
    stack: list[Term | tuple[Term]] = [term]

    while stack:
        item = stack.pop()
        if isinstance(item, tuple):
            t = item[0]
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
                    results.append(PList(tuple(parts[:-1]), parts[-1]))
                else:
                    results.append(PList(tuple(parts)))
        elif isinstance(item, Var):
            results.append(var_map.get(item.name, item))
        elif isinstance(item, Compound) and item.args:
            stack.append((item,))
            stack.extend(reversed(item.args))
        elif isinstance(item, PList) and not item.is_empty:
            stack.append((item,))
            if item.tail is not None:
                stack.append(item.tail)
            stack.extend(reversed(item.elements))
        else:
            results.append(item)

    return results[0]


def term_variables(term: Term) -> list[str]:
    """Variable names in depth-first, left-to-right order (no duplicates)."""
    seen: dict[str, None] = {}
    stack = [term]
    while stack:
        t = stack.pop()
        if isinstance(t, Var):
            seen.setdefault(t.name, None)
        elif isinstance(t, Compound):
            stack.extend(reversed(t.args))
        elif isinstance(t, PList):
            if t.tail is not None:
                stack.append(t.tail)
            stack.extend(reversed(t.elements))
    return list(seen)


# =============================================================================
# PRINTING
# =============================================================================

_PLAIN_ATOM = re.compile(r"^[a-z][A-Za-z0-9_]*$")
_SYMBOL_ATOM = re.compile(r"^[+\-*/\\^<>=~:.?@#&$]+$")


def format_atom(value: str) -> str:
    """Print an atom name, quoting it when it would not re-read as itself."""
    if _PLAIN_ATOM.match(value) or (_SYMBOL_ATOM.match(value) and value != "."):
        return value
    if value in ("!", ";"):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n").replace("\t", "\\t")
    return f"'{escaped}'"


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return f"{value:.1f}"
    return repr(value)


def _format_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def format_term(term: Term) -> str:
    """Canonical text form of a term.

    Output re-parses to a structurally equal term: operators are printed
    in functional notation (``is(X, +(1, 2))``) and atoms are quoted when
    required.
    """
    out: list[str] = []
    # Python strings on the stack are literal output, terms are expanded
    stack: list[Term | str] = [term]

    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
        elif isinstance(item, Var):
            out.append(item.name)
        elif isinstance(item, Atom):
            out.append(format_atom(item.value))
        elif isinstance(item, Num):
            out.append(_format_number(item.value))
        elif isinstance(item, Str):
            out.append(_format_string(item.value))
        elif isinstance(item, PList):
            parts: list[Term | str] = ["[", *_separated(item.elements)]
            if item.tail is not None:
                parts += ["|", item.tail]
            parts.append("]")
            stack.extend(reversed(parts))
        elif isinstance(item, Compound):
            parts = [f"{format_atom(item.functor)}(", *_separated(item.args), ")"]
            stack.extend(reversed(parts))
        else:
            raise TypeError(f"Unknown term type: {type(item).__name__}")

    return "".join(out)


def _separated(terms: tuple[Term, ...]) -> list[Term | str]:
    parts: list[Term | str] = []
    for i, t in enumerate(terms):
        if i:
            parts.append(", ")
        parts.append(t)
    return parts
