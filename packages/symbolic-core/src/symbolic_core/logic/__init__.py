"""
logic - Horn-clause logic interpreter

A small Prolog-like language: parser, unification, knowledge base and an
SLD resolver with backtracking, cut, negation-as-failure and builtins.

Example:
    from symbolic_core.logic import LogicEngine

    engine = LogicEngine()
    engine.load_program("parent(tom, bob). parent(bob, ann).")
    engine.solutions("parent(tom, X)")  # [{"X": "bob"}]
"""

from .builtins import (
    ArithmeticFailure,
    BuiltinContext,
    BuiltinResult,
    eval_arith,
    execute_builtin,
    get_builtin_list,
    is_builtin,
)
from .engine import LogicEngine
from .knowledge_base import KnowledgeBase, LoadResult
from .parser import ParseError, ParseResult, parse_clause, parse_program, parse_query, parse_term
from .resolver import (
    CancellationToken,
    QueryCancelled,
    QueryResult,
    ResolutionStatus,
    Resolver,
    create_resolver,
)
from .terms import (
    EMPTY_LIST,
    Atom,
    Clause,
    Compound,
    Num,
    PList,
    Str,
    Term,
    Var,
    format_term,
    make_list,
    rename_term,
    term_variables,
)
from .unification import (
    Substitution,
    compose_substitutions,
    deref,
    occurs_check,
    restrict,
    structurally_equal,
    substitute,
    unify,
)
from .values import term_from_value, term_to_value

__all__ = [
    # Terms
    "Term",
    "Atom",
    "Var",
    "Num",
    "Str",
    "PList",
    "Compound",
    "Clause",
    "EMPTY_LIST",
    "make_list",
    "format_term",
    "rename_term",
    "term_variables",
    # Parser
    "parse_term",
    "parse_clause",
    "parse_program",
    "parse_query",
    "ParseError",
    "ParseResult",
    # Unification
    "Substitution",
    "unify",
    "deref",
    "substitute",
    "structurally_equal",
    "compose_substitutions",
    "restrict",
    "occurs_check",
    # Knowledge Base
    "KnowledgeBase",
    "LoadResult",
    # Resolution
    "Resolver",
    "QueryResult",
    "ResolutionStatus",
    "CancellationToken",
    "QueryCancelled",
    "create_resolver",
    # Builtins
    "execute_builtin",
    "is_builtin",
    "get_builtin_list",
    "eval_arith",
    "BuiltinResult",
    "BuiltinContext",
    "ArithmeticFailure",
    # Values
    "term_from_value",
    "term_to_value",
    # Facade
    "LogicEngine",
]
