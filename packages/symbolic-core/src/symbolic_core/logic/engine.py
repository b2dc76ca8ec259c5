"""
logic/engine.py - Text-level facade for the logic interpreter

Provides the narrow interface the tool-calling layer consumes: program
text in, host values out. Parse errors are returned, never raised.

Example:
    from symbolic_core.logic import LogicEngine

    engine = LogicEngine()
    engine.load_program('''
        parent(tom, bob).
        parent(bob, ann).
        grandparent(X, Z) :- parent(X, Y), parent(Y, Z).
    ''')

    engine.prove("grandparent(tom, ann)")      # True
    engine.solutions("parent(tom, X)")         # [{"X": "bob"}]
    print(engine.format_solutions(engine.query("parent(P, ann)")))
    # P = bob
"""
from __future__ import annotations

import logging
from typing import Any

from ..config import LogicConfig, get_settings
from .knowledge_base import KnowledgeBase, LoadResult
from .parser import ParseError, ParseResult, parse_clause, parse_query
from .resolver import CancellationToken, QueryResult, Resolver, ResolutionStatus
from .terms import Clause, Compound, format_term
from .values import term_from_value, term_to_value

logger = logging.getLogger(__name__)


class LogicEngine:
    """Knowledge base plus resolver behind a text interface."""

    def __init__(self, config: LogicConfig | None = None, kb: KnowledgeBase | None = None):
        """Initialize engine.

        Args:
            config: Resolution settings (defaults come from environment settings)
            kb: Existing knowledge base (creates new if None)
        """
        self.config = config or get_settings().logic_config()
        self.kb = kb if kb is not None else KnowledgeBase()
        self.resolver = Resolver(self.kb, self.config)

    # -------------------------------------------------------------------------
    # Building the knowledge base
    # -------------------------------------------------------------------------

    def load_program(self, text: str) -> LoadResult:
        """Append all clauses of a program."""
        return self.kb.load_program(text)

    def assert_fact(self, functor: str, *values: Any) -> Clause:
        """Add a fact from host values.

        Example:
            engine.assert_fact("likes", "alice", "pizza")
        """
        return self.kb.assert_fact(Compound(functor, tuple(term_from_value(v) for v in values)))

    def assert_rule(self, text: str) -> ParseResult[Clause]:
        """Parse one clause (e.g. ``"p(X) :- q(X)."``) and append it."""
        if not text.rstrip().endswith("."):
            text = text.rstrip() + "."
        result = parse_clause(text)
        if result.success:
            self.kb.assert_clause(result.value)
        else:
            logger.info("Rule rejected: %s", result.error)
        return result

    def clear(self) -> None:
        """Clear all facts and rules."""
        self.kb.clear()

    # -------------------------------------------------------------------------
    # Querying
    # -------------------------------------------------------------------------

    def query(self, text: str, cancel: CancellationToken | None = None) -> QueryResult | ParseError:
        """Run a query such as ``"parent(tom, X), X \\== bob"``."""
        parsed = parse_query(text)
        if not parsed.success:
            logger.info("Query rejected: %s", parsed.error)
            return parsed.error
        return self.resolver.query(parsed.value, cancel=cancel)

    def prove(self, text: str) -> bool:
        """True if the query has at least one solution."""
        parsed = parse_query(text)
        if not parsed.success:
            logger.info("Query rejected: %s", parsed.error)
            return False
        return self.resolver.prove(parsed.value)

    def solutions(self, text: str) -> list[dict[str, Any]]:
        """Solutions as dictionaries of host values."""
        result = self.query(text)
        if isinstance(result, ParseError):
            return []
        return [
            {name: term_to_value(value) for name, value in solution.items()}
            for solution in result.solutions
        ]

    @staticmethod
    def format_solutions(result: QueryResult | ParseError) -> str:
        """Render a query result the way an interactive top level would."""
        if isinstance(result, ParseError):
            return f"error: {result}"
        if result.status in (
            ResolutionStatus.CANCELLED,
            ResolutionStatus.TIMEOUT,
            ResolutionStatus.DEPTH_EXCEEDED,
            ResolutionStatus.ERROR,
        ):
            return f"{result.status.value}."
        if not result.success:
            return "false."
        lines = []
        for solution in result.solutions:
            if solution:
                lines.append(", ".join(f"{name} = {format_term(value)}" for name, value in solution.items()))
            else:
                lines.append("true.")
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Configuration and persistence
    # -------------------------------------------------------------------------

    def update_config(self, **changes: Any) -> LogicConfig:
        """Replace configuration values (validated) and rebuild the resolver."""
        self.config = LogicConfig(**{**self.config.model_dump(), **changes})
        self.resolver = Resolver(self.kb, self.config)
        return self.config

    def save(self, path: str, format: str = "yaml") -> None:
        """Save knowledge base to file.

        Args:
            path: File path
            format: "yaml" or "json"
        """
        if format == "yaml":
            self.kb.to_yaml(path)
        else:
            self.kb.to_json(path)

    def load(self, path: str, format: str = "yaml") -> None:
        """Replace the knowledge base with one loaded from file."""
        if format == "yaml":
            self.kb = KnowledgeBase.from_yaml(path)
        else:
            self.kb = KnowledgeBase.from_json(path)
        self.resolver = Resolver(self.kb, self.config)
