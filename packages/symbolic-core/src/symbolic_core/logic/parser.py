"""
logic/parser.py - Tokenizer and Parser for Logic Programs

Turns source text into terms, clauses, programs and queries.

Syntax:
    parent(tom, bob).                       % fact
    grandparent(X, Z) :- parent(X, Y),      % rule
                         parent(Y, Z).
    /* block comment */
    len([], 0).
    len([_|T], N) :- len(T, M), N is M + 1.

Supported terms: atoms (lowercase or 'quoted'), variables (uppercase or
underscore leading, bare ``_`` is anonymous), numbers, "strings" with
escapes, lists with ``[H|T]`` tails, compounds ``f(a, b)`` and the usual
operator syntax (``X is Y + 1``, ``A \\== B``, ``(C -> T ; E)``, ``\\+ G``).

Errors never escape the public functions: every entry point returns a
``ParseResult`` carrying either the value or a ``ParseError``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

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
    make_list,
    to_goal,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ParseError:
    """A syntax error with the character offset where it was detected."""
    message: str
    position: int

    def __str__(self) -> str:
        return f"{self.message} (at position {self.position})"


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of a parse: ``value`` on success, ``error`` otherwise."""
    success: bool
    value: T | None = None
    error: ParseError | None = None

    @classmethod
    def ok(cls, value: T) -> ParseResult[T]:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: ParseError) -> ParseResult[T]:
        return cls(success=False, error=error)


class _SyntaxFailure(Exception):
    def __init__(self, message: str, position: int):
        super().__init__(message)
        self.message = message
        self.position = position


# =============================================================================
# TOKENIZER
# =============================================================================

# Token kinds
ATOM = "atom"
QATOM = "qatom"  # quoted atom: never treated as an operator
VAR = "var"
NUM = "num"
STR = "str"
PUNCT = "punct"
END = "end"
EOF = "eof"

SYMBOL_CHARS = set("+-*/\\^<>=~:.?@#&$")
PUNCTUATION = set("()[]|,")
ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"', "0": "\0", "a": "\a", "b": "\b"}


@dataclass(frozen=True)
class Token:
    kind: str
    value: object
    position: int
    layout_before: bool = False  # whitespace or comment precedes the token


class Tokenizer:
    """Splits program text into tokens, skipping layout and comments."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def tokenize(self) -> list[Token]:
        tokens = []
        while True:
            tok = self._next()
            tokens.append(tok)
            if tok.kind == EOF:
                return tokens

    def _skip_layout(self) -> bool:
        text = self.text
        skipped = False
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
                skipped = True
            elif ch == "%":
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
                skipped = True
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise _SyntaxFailure("Unterminated block comment", self.pos)
                self.pos = end + 2
                skipped = True
            else:
                break
        return skipped

    def _next(self) -> Token:
        layout = self._skip_layout()
        text = self.text
        start = self.pos
        if start >= len(text):
            return Token(EOF, None, start, layout)

        ch = text[start]

        if ch.isdigit():
            return self._number(start, layout)

        if ch == "_" or ch.isupper():
            end = start + 1
            while end < len(text) and (text[end].isalnum() or text[end] == "_"):
                end += 1
            self.pos = end
            return Token(VAR, text[start:end], start, layout)

        if ch.isalpha():
            end = start + 1
            while end < len(text) and (text[end].isalnum() or text[end] == "_"):
                end += 1
            self.pos = end
            return Token(ATOM, text[start:end], start, layout)

        if ch == "'":
            return Token(QATOM, self._quoted("'"), start, layout)

        if ch == '"':
            return Token(STR, self._quoted('"'), start, layout)

        if ch in PUNCTUATION:
            self.pos += 1
            return Token(PUNCT, ch, start, layout)

        if ch == "!" or ch == ";":
            self.pos += 1
            return Token(ATOM, ch, start, layout)

        if ch == "." and (start + 1 >= len(text) or text[start + 1].isspace() or text[start + 1] == "%"):
            self.pos += 1
            return Token(END, ".", start, layout)

        if ch in SYMBOL_CHARS:
            end = start + 1
            while end < len(text) and text[end] in SYMBOL_CHARS:
                end += 1
            self.pos = end
            return Token(ATOM, text[start:end], start, layout)

        raise _SyntaxFailure(f"Unexpected character {ch!r}", start)

    def _number(self, start: int, layout: bool) -> Token:
        text = self.text
        end = start
        while end < len(text) and text[end].isdigit():
            end += 1
        is_float = False
        if end + 1 < len(text) and text[end] == "." and text[end + 1].isdigit():
            is_float = True
            end += 1
            while end < len(text) and text[end].isdigit():
                end += 1
        if end < len(text) and text[end] in "eE":
            exp = end + 1
            if exp < len(text) and text[exp] in "+-":
                exp += 1
            if exp < len(text) and text[exp].isdigit():
                is_float = True
                end = exp
                while end < len(text) and text[end].isdigit():
                    end += 1
        self.pos = end
        literal = text[start:end]
        try:
            value = float(literal) if is_float else int(literal)
        except ValueError:
            raise _SyntaxFailure(f"Invalid number {literal!r}", start) from None
        return Token(NUM, value, start, layout)

    def _quoted(self, quote: str) -> str:
        text = self.text
        start = self.pos
        i = start + 1
        chars = []
        while i < len(text):
            ch = text[i]
            if ch == "\\":
                if i + 1 >= len(text):
                    break
                nxt = text[i + 1]
                chars.append(ESCAPES.get(nxt, nxt))
                i += 2
                continue
            if ch == quote:
                if i + 1 < len(text) and text[i + 1] == quote:
                    chars.append(quote)
                    i += 2
                    continue
                self.pos = i + 1
                return "".join(chars)
            chars.append(ch)
            i += 1
        raise _SyntaxFailure("Unterminated string literal", start)


# =============================================================================
# OPERATORS
# =============================================================================

INFIX_OPS: dict[str, tuple[int, str]] = {
    ":-": (1200, "xfx"),
    ";": (1100, "xfy"),
    "->": (1050, "xfy"),
    ",": (1000, "xfy"),
    "=": (700, "xfx"),
    "\\=": (700, "xfx"),
    "==": (700, "xfx"),
    "\\==": (700, "xfx"),
    "is": (700, "xfx"),
    "<": (700, "xfx"),
    ">": (700, "xfx"),
    "=<": (700, "xfx"),
    ">=": (700, "xfx"),
    "=:=": (700, "xfx"),
    "=\\=": (700, "xfx"),
    "+": (500, "yfx"),
    "-": (500, "yfx"),
    "*": (400, "yfx"),
    "/": (400, "yfx"),
    "//": (400, "yfx"),
    "mod": (400, "yfx"),
    "**": (200, "xfx"),
    "^": (200, "xfy"),
}

PREFIX_OPS: dict[str, tuple[int, str]] = {
    "-": (200, "fy"),
    "\\+": (900, "fy"),
}

# Tokens after which a prefix operator is read as a plain atom
_TERM_STOPPERS = {")", "]", "|", ","}


# =============================================================================
# PARSER
# =============================================================================

class Parser:
    """Operator-precedence parser over a token list.

    Each parser owns its anonymous-variable counter, so parsing is
    reentrant: ``_`` becomes ``_G1``, ``_G2``, ... within one parse.
    """

    def __init__(self, text: str):
        self.tokens = Tokenizer(text).tokenize()
        self.index = 0
        self._anon_counter = 0

    # -- token helpers --------------------------------------------------------

    def peek(self, offset: int = 0) -> Token:
        i = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[i]

    def advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.kind != EOF:
            self.index += 1
        return tok

    def expect_punct(self, value: str) -> Token:
        tok = self.advance()
        if tok.kind != PUNCT or tok.value != value:
            raise _SyntaxFailure(f"Expected '{value}' but found {_describe(tok)}", tok.position)
        return tok

    def at_eof(self) -> bool:
        return self.peek().kind == EOF

    def fresh_anonymous(self) -> Var:
        self._anon_counter += 1
        return Var(f"_G{self._anon_counter}")

    # -- grammar --------------------------------------------------------------

    def parse(self, max_prec: int = 1200) -> Term:
        left, left_prec = self._parse_primary(max_prec)
        return self._parse_infix(left, left_prec, max_prec)

    def _parse_infix(self, left: Term, left_prec: int, max_prec: int) -> Term:
        while True:
            tok = self.peek()
            name = _infix_name(tok)
            if name is None:
                return left
            prec, kind = INFIX_OPS[name]
            left_max = prec - 1 if kind[0] == "x" else prec
            right_max = prec - 1 if kind[2] == "x" else prec
            if prec > max_prec or left_prec > left_max:
                return left
            self.advance()
            right = self.parse(right_max)
            left = Compound(name, (left, right))
            left_prec = prec

    def _parse_primary(self, max_prec: int) -> tuple[Term, int]:
        tok = self.advance()

        if tok.kind == NUM:
            return Num(tok.value), 0

        if tok.kind == VAR:
            if tok.value == "_":
                return self.fresh_anonymous(), 0
            return Var(tok.value), 0

        if tok.kind == STR:
            return Str(tok.value), 0

        if tok.kind == PUNCT:
            if tok.value == "(":
                inner = self.parse(1200)
                self.expect_punct(")")
                return inner, 0
            if tok.value == "[":
                return self._parse_list(), 0
            raise _SyntaxFailure(f"Unexpected token {_describe(tok)}", tok.position)

        if tok.kind in (ATOM, QATOM):
            return self._parse_atom_or_compound(tok, max_prec)

        if tok.kind == END:
            raise _SyntaxFailure("Unexpected end of clause '.'", tok.position)
        raise _SyntaxFailure("Unexpected end of input", tok.position)

    def _parse_atom_or_compound(self, tok: Token, max_prec: int) -> tuple[Term, int]:
        name = tok.value
        nxt = self.peek()

        # Functional notation: f(...) with no layout before '('
        if nxt.kind == PUNCT and nxt.value == "(" and not nxt.layout_before:
            self.advance()
            args: list[Term] = []
            if self.peek().kind == PUNCT and self.peek().value == ")":
                self.advance()
                return Compound(name, ()), 0
            args.append(self.parse(999))
            while self.peek().kind == PUNCT and self.peek().value == ",":
                self.advance()
                args.append(self.parse(999))
            self.expect_punct(")")
            return Compound(name, tuple(args)), 0

        if tok.kind == ATOM:
            # Negative numeric literal: -7, -3.5
            if name == "-" and nxt.kind == NUM and not nxt.layout_before:
                self.advance()
                return Num(-nxt.value), 0

            if name in PREFIX_OPS and _starts_term(nxt):
                prec, kind = PREFIX_OPS[name]
                prec = min(prec, max_prec)
                arg_max = prec if kind == "fy" else prec - 1
                arg = self.parse(arg_max)
                return Compound(name, (arg,)), prec

        return Atom(name), 0

    def _parse_list(self) -> Term:
        if self.peek().kind == PUNCT and self.peek().value == "]":
            self.advance()
            return EMPTY_LIST
        elements = [self.parse(999)]
        tail: Term | None = None
        while True:
            tok = self.advance()
            if tok.kind == PUNCT and tok.value == ",":
                elements.append(self.parse(999))
            elif tok.kind == PUNCT and tok.value == "|":
                tail = self.parse(999)
                self.expect_punct("]")
                break
            elif tok.kind == PUNCT and tok.value == "]":
                break
            else:
                raise _SyntaxFailure(f"Expected ',', '|' or ']' in list but found {_describe(tok)}", tok.position)
        return make_list(elements, tail)

    # -- top-level forms ------------------------------------------------------

    def parse_clause(self) -> Clause:
        start = self.peek().position
        term = self.parse(1200)
        tok = self.advance()
        if tok.kind != END:
            raise _SyntaxFailure(
                f"Expected '.' at end of clause but found {_describe(tok)}", tok.position
            )
        return _clause_from_term(term, start)

    def parse_goals(self) -> list[Term]:
        term = self.parse(1200)
        if self.peek().kind == END:
            self.advance()
        tok = self.peek()
        if tok.kind != EOF:
            raise _SyntaxFailure(f"Unexpected token {_describe(tok)}", tok.position)
        goals = []
        for goal in flatten_conjunction(term):
            goals.append(_check_callable(goal, 0))
        return goals


def _describe(tok: Token) -> str:
    if tok.kind == EOF:
        return "end of input"
    if tok.kind == END:
        return "'.'"
    return repr(str(tok.value))


def _infix_name(tok: Token) -> str | None:
    if tok.kind == PUNCT and tok.value == ",":
        return ","
    if tok.kind == ATOM and tok.value in INFIX_OPS:
        return tok.value
    return None


def _starts_term(tok: Token) -> bool:
    if tok.kind in (EOF, END):
        return False
    if tok.kind == PUNCT:
        return tok.value not in _TERM_STOPPERS
    if tok.kind == ATOM and tok.value in INFIX_OPS and tok.value not in PREFIX_OPS:
        return False
    return True


def flatten_conjunction(term: Term) -> list[Term]:
    """Split ``(a, b, c)`` into ``[a, b, c]``."""
    goals = []
    stack = [term]
    while stack:
        t = stack.pop()
        if isinstance(t, Compound) and t.functor == "," and t.arity == 2:
            stack.append(t.args[1])
            stack.append(t.args[0])
        else:
            goals.append(t)
    return goals


def _check_callable(goal: Term, position: int) -> Term:
    goal = to_goal(goal)
    if isinstance(goal, (Num, Str, PList)):
        raise _SyntaxFailure(f"Goal is not callable: {goal}", position)
    return goal


def _clause_from_term(term: Term, position: int) -> Clause:
    if isinstance(term, Compound) and term.functor == ":-" and term.arity == 2:
        head, body = term.args
        goals = tuple(_check_callable(g, position) for g in flatten_conjunction(body))
    else:
        head, goals = term, ()
    head = to_goal(head)
    if not isinstance(head, Compound):
        raise _SyntaxFailure(f"Invalid clause head: {head}", position)
    return Clause(head, goals)


# =============================================================================
# PUBLIC API
# =============================================================================

def _run(text: str, action) -> ParseResult:
    try:
        parser = Parser(text)
        return ParseResult.ok(action(parser))
    except _SyntaxFailure as e:
        logger.debug("Parse error: %s at %d", e.message, e.position)
        return ParseResult.fail(ParseError(e.message, e.position))
    except RecursionError:
        return ParseResult.fail(ParseError("Term nesting too deep", 0))


def parse_term(text: str) -> ParseResult[Term]:
    """Parse a single term (an optional trailing '.' is allowed)."""
    def action(parser: Parser) -> Term:
        term = parser.parse(1200)
        if parser.peek().kind == END:
            parser.advance()
        tok = parser.peek()
        if tok.kind != EOF:
            raise _SyntaxFailure(f"Unexpected token {_describe(tok)}", tok.position)
        return term
    return _run(text, action)


def parse_clause(text: str) -> ParseResult[Clause]:
    """Parse exactly one clause terminated by '.'."""
    def action(parser: Parser) -> Clause:
        clause = parser.parse_clause()
        tok = parser.peek()
        if tok.kind != EOF:
            raise _SyntaxFailure(f"Unexpected token {_describe(tok)} after clause", tok.position)
        return clause
    return _run(text, action)


def parse_program(text: str) -> ParseResult[list[Clause]]:
    """Parse zero or more clauses."""
    def action(parser: Parser) -> list[Clause]:
        clauses = []
        while not parser.at_eof():
            clauses.append(parser.parse_clause())
        return clauses
    return _run(text, action)


def parse_query(text: str) -> ParseResult[list[Term]]:
    """Parse a comma-separated goal list (no trailing period required)."""
    return _run(text, lambda parser: parser.parse_goals())
