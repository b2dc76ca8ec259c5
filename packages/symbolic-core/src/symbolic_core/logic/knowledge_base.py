"""
logic/knowledge_base.py - Knowledge Base for Logic Programs

The knowledge base stores facts and rules and indexes them by predicate
indicator (functor, arity) for constant-time candidate lookup.

Features:
- assertz/asserta style insertion
- Retraction by unification
- Program loading from source text
- Persistence support (JSON/YAML)

The knowledge base must not be mutated while a query is running. The
resolver snapshots the clause list for a predicate each time it is called.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterator

import yaml

from .parser import ParseError, parse_program
from .terms import (
    Atom,
    Clause,
    Compound,
    Num,
    PList,
    Str,
    Term,
    Var,
    make_list,
    to_goal,
)
from .unification import unify

logger = logging.getLogger(__name__)

Indicator = tuple[str, int]


@dataclass
class LoadResult:
    """Outcome of loading program text."""
    success: bool
    clauses_loaded: int = 0
    errors: list[ParseError] = field(default_factory=list)


class KnowledgeBase:
    """Indexed store of Horn clauses.

    Example:
        kb = KnowledgeBase()
        kb.assert_fact(Compound("parent", (Atom("tom"), Atom("bob"))))
        kb.load_program("grandparent(X, Z) :- parent(X, Y), parent(Y, Z).")

        kb.get_clauses("parent", 2)  # [parent(tom, bob).]
    """

    def __init__(self):
        # Clauses indexed by (functor, arity), in insertion order
        self._index: dict[Indicator, list[Clause]] = defaultdict(list)

        # Statistics
        self._stats = {
            "facts_added": 0,
            "rules_added": 0,
            "retracted": 0,
        }

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------

    def assert_fact(self, term: Term) -> Clause:
        """Append a fact (a clause with an empty body)."""
        return self.assert_clause(Clause(_as_head(term), ()))

    def assert_rule(self, head: Term, *body: Term) -> Clause:
        """Append a rule ``head :- body``."""
        if not body:
            raise ValueError("A rule needs at least one body goal; use assert_fact")
        return self.assert_clause(Clause(_as_head(head), tuple(to_goal(g) for g in body)))

    def assert_clause(self, clause: Clause) -> Clause:
        """Append a clause after existing clauses for its predicate (assertz)."""
        self._index[clause.indicator].append(clause)
        self._count(clause)
        return clause

    def asserta(self, clause: Clause) -> Clause:
        """Insert a clause before existing clauses for its predicate."""
        self._index[clause.indicator].insert(0, clause)
        self._count(clause)
        return clause

    def _count(self, clause: Clause) -> None:
        if clause.is_fact:
            self._stats["facts_added"] += 1
        else:
            self._stats["rules_added"] += 1

    def load_program(self, text: str) -> LoadResult:
        """Parse program text and append all its clauses.

        Nothing is added when the text fails to parse.
        """
        result = parse_program(text)
        if not result.success:
            logger.info("Program rejected: %s", result.error)
            return LoadResult(success=False, clauses_loaded=0, errors=[result.error])

        for clause in result.value:
            self.assert_clause(clause)
        logger.info("Loaded %d clauses", len(result.value))
        return LoadResult(success=True, clauses_loaded=len(result.value))

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    def retract(self, target: Term | Clause) -> Clause | None:
        """Remove the first clause that unifies with target.

        A bare head term only matches facts; pass a Clause to match a rule
        by head and body.

        Returns:
            The removed clause, or None if nothing matched
        """
        if isinstance(target, Clause):
            pattern = target
        else:
            pattern = Clause(_as_head(target), ())

        clauses = self._index.get(pattern.indicator, [])
        for i, clause in enumerate(clauses):
            if len(clause.body) != len(pattern.body):
                continue
            theta = unify(pattern.head, clause.head)
            for a, b in zip(pattern.body, clause.body):
                if theta is None:
                    break
                theta = unify(a, b, theta)
            if theta is not None:
                del clauses[i]
                self._stats["retracted"] += 1
                return clause
        return None

    def retract_all(self, functor: str, arity: int) -> int:
        """Remove every clause of a predicate. Returns the number removed."""
        removed = self._index.pop((functor, arity), [])
        self._stats["retracted"] += len(removed)
        return len(removed)

    def clear(self) -> None:
        """Clear all facts and rules."""
        self._index.clear()

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_clauses(self, functor: str, arity: int) -> list[Clause]:
        """Snapshot of the clauses for a predicate, in resolution order."""
        return list(self._index.get((functor, arity), ()))

    def has_predicate(self, functor: str, arity: int) -> bool:
        return bool(self._index.get((functor, arity)))

    def predicates(self) -> list[str]:
        """Defined predicates as ``name/arity`` strings."""
        return [f"{name}/{arity}" for (name, arity), clauses in self._index.items() if clauses]

    def __len__(self) -> int:
        """Total number of clauses."""
        return sum(len(clauses) for clauses in self._index.values())

    def __iter__(self) -> Iterator[Clause]:
        """Iterate over all clauses, grouped by predicate."""
        for clauses in list(self._index.values()):
            yield from clauses

    @property
    def fact_count(self) -> int:
        return sum(1 for clause in self if clause.is_fact)

    @property
    def rule_count(self) -> int:
        return sum(1 for clause in self if clause.is_rule)

    @property
    def stats(self) -> dict[str, int]:
        """Get statistics."""
        return dict(self._stats)

    def listing(self) -> str:
        """Program text for the whole knowledge base."""
        return "\n".join(str(clause) for clause in self)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Export to dictionary."""
        return {
            "clauses": [
                {
                    "head": _term_to_dict(clause.head),
                    "body": [_term_to_dict(t) for t in clause.body],
                }
                for clause in self
            ]
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnowledgeBase:
        """Import from dictionary."""
        kb = cls()
        for clause_data in data.get("clauses", []):
            head = _dict_to_term(clause_data["head"])
            body = tuple(_dict_to_term(t) for t in clause_data.get("body", []))
            kb.assert_clause(Clause(_as_head(head), body))
        return kb

    def to_json(self, path: str) -> None:
        """Save to JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_json(cls, path: str) -> KnowledgeBase:
        """Load from JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def to_yaml(self, path: str) -> None:
        """Save to YAML file."""
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: str) -> KnowledgeBase:
        """Load from YAML file."""
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f) or {})


def _as_head(term: Term) -> Compound:
    term = to_goal(term)
    if not isinstance(term, Compound):
        raise ValueError(f"Clause head must be an atom or compound, got: {term}")
    return term


def _term_to_dict(term: Term) -> dict:
    """Convert term to dictionary."""
    if isinstance(term, Var):
        return {"type": "var", "name": term.name}
    elif isinstance(term, Atom):
        return {"type": "atom", "value": term.value}
    elif isinstance(term, Num):
        return {"type": "num", "value": term.value}
    elif isinstance(term, Str):
        return {"type": "str", "value": term.value}
    elif isinstance(term, PList):
        data = {"type": "list", "elements": [_term_to_dict(e) for e in term.elements]}
        if term.tail is not None:
            data["tail"] = _term_to_dict(term.tail)
        return data
    elif isinstance(term, Compound):
        return {
            "type": "compound",
            "functor": term.functor,
            "args": [_term_to_dict(arg) for arg in term.args]
        }
    raise ValueError(f"Unknown term type: {type(term)}")


def _dict_to_term(data: dict) -> Term:
    """Convert dictionary to term."""
    t = data["type"]
    if t == "var":
        return Var(data["name"])
    elif t == "atom":
        return Atom(data["value"])
    elif t == "num":
        return Num(data["value"])
    elif t == "str":
        return Str(data["value"])
    elif t == "list":
        tail = _dict_to_term(data["tail"]) if "tail" in data else None
        return make_list([_dict_to_term(e) for e in data.get("elements", [])], tail)
    elif t == "compound":
        args = tuple(_dict_to_term(arg) for arg in data.get("args", []))
        return Compound(data["functor"], args)
    raise ValueError(f"Unknown term type: {t}")
