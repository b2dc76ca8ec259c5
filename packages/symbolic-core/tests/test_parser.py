"""
tests/test_parser.py - Parser Tests

Key Properties Tested:
    - Terms, clauses, programs and queries parse to the expected structures
    - Operator precedence and associativity
    - Comments and layout are skipped
    - Errors are returned as ParseError values, never raised
"""

import pytest

from symbolic_core.logic import (
    Atom,
    Compound,
    Num,
    PList,
    Str,
    Var,
    parse_clause,
    parse_program,
    parse_query,
    parse_term,
)


def term(text):
    result = parse_term(text)
    assert result.success, result.error
    return result.value


# =============================================================================
# TESTS: TERMS
# =============================================================================


class TestTerms:
    """Primary term syntax."""

    def test_compound(self):
        assert term("foo(bar, X)") == Compound("foo", (Atom("bar"), Var("X")))

    def test_numbers(self):
        assert term("42") == Num(42)
        assert term("3.14") == Num(3.14)
        assert term("-7") == Num(-7)
        assert term("1.0e3") == Num(1000.0)

    def test_quoted_atom(self):
        assert term("'hello world'") == Atom("hello world")

    def test_string_escapes(self):
        assert term('"hello\\nworld"') == Str("hello\nworld")

    def test_anonymous_variables_are_distinct(self):
        clause = parse_clause("p(_, _).").value
        first, second = clause.head.args
        assert first.name.startswith("_G")
        assert first != second

    def test_anonymous_counter_is_per_parse(self):
        assert term("_") == term("_")

    def test_list_with_tail(self):
        assert term("[1, 2|T]") == PList((Num(1), Num(2)), Var("T"))

    def test_list_tail_is_flattened(self):
        assert term("[a|[b, c]]") == PList((Atom("a"), Atom("b"), Atom("c")))

    def test_empty_list(self):
        assert term("[]") == PList(())

    def test_trailing_period_allowed(self):
        assert term("foo.") == Atom("foo")


# =============================================================================
# TESTS: OPERATORS
# =============================================================================


class TestOperators:
    """Operator precedence and associativity."""

    def test_arithmetic_precedence(self):
        expected = Compound("is", (
            Var("X"),
            Compound("+", (Num(2), Compound("*", (Num(3), Num(4))))),
        ))
        assert term("X is 2 + 3 * 4") == expected

    def test_left_associative_minus(self):
        expected = Compound("-", (Compound("-", (Atom("a"), Atom("b"))), Atom("c")))
        assert term("a - b - c") == expected

    def test_parentheses_override(self):
        expected = Compound("*", (Compound("+", (Num(1), Num(2))), Num(3)))
        assert term("(1 + 2) * 3") == expected

    def test_negation_prefix(self):
        assert term("\\+ p(X)") == Compound("\\+", (Compound("p", (Var("X"),)),))

    def test_if_then_else(self):
        expected = Compound(";", (Compound("->", (Atom("a"), Atom("b"))), Atom("c")))
        assert term("(a -> b ; c)") == expected

    def test_comparison_operators(self):
        assert term("X \\== Y") == Compound("\\==", (Var("X"), Var("Y")))
        assert term("X =< 3") == Compound("=<", (Var("X"), Num(3)))
        assert term("X mod 2") == Compound("mod", (Var("X"), Num(2)))

    def test_negative_argument(self):
        assert term("X is -1") == Compound("is", (Var("X"), Num(-1)))

    def test_operator_as_atom_argument(self):
        assert term("f(-, +)") == Compound("f", (Atom("-"), Atom("+")))


# =============================================================================
# TESTS: CLAUSES AND PROGRAMS
# =============================================================================


class TestClauses:
    """Clause and program parsing."""

    def test_fact(self):
        clause = parse_clause("parent(tom, bob).").value
        assert clause.is_fact
        assert clause.head == Compound("parent", (Atom("tom"), Atom("bob")))

    def test_rule_body_is_flattened(self):
        clause = parse_clause("grandparent(X, Z) :- parent(X, Y), parent(Y, Z).").value
        assert clause.is_rule
        assert len(clause.body) == 2
        assert clause.body[1] == Compound("parent", (Var("Y"), Var("Z")))

    def test_atom_goals_become_compounds(self):
        clause = parse_clause("p :- true.").value
        assert clause.head == Compound("p", ())
        assert clause.body == (Compound("true", ()),)

    def test_missing_period(self):
        result = parse_clause("foo(a)")
        assert not result.success
        assert "Expected '.'" in result.error.message

    def test_number_head_rejected(self):
        result = parse_clause("42.")
        assert not result.success
        assert "Invalid clause head" in result.error.message

    def test_program_with_comments(self):
        text = """
        % line comment
        foo(a). /* block
        comment */ bar(b).
        /* trailing */
        """
        result = parse_program(text)
        assert result.success
        assert [c.head.functor for c in result.value] == ["foo", "bar"]

    def test_empty_program(self):
        result = parse_program("  % nothing here\n")
        assert result.success
        assert result.value == []


# =============================================================================
# TESTS: QUERIES
# =============================================================================


class TestQueries:
    """Query parsing."""

    def test_goal_list(self):
        goals = parse_query("parent(X, Y), X \\== Y").value
        assert len(goals) == 2
        assert goals[0] == Compound("parent", (Var("X"), Var("Y")))

    def test_optional_period(self):
        assert parse_query("parent(X, Y).").value == parse_query("parent(X, Y)").value

    def test_atom_goal(self):
        assert parse_query("true").value == [Compound("true", ())]

    def test_number_goal_rejected(self):
        assert not parse_query("42").success


# =============================================================================
# TESTS: ERRORS
# =============================================================================


class TestErrors:
    """Malformed input yields a ParseError with a position."""

    @pytest.mark.parametrize("text,message", [
        ('"abc', "Unterminated string"),
        ("'abc", "Unterminated string"),
        ("foo(a). /* oops", "Unterminated block comment"),
        (")", "Unexpected token"),
        ("", "Unexpected end of input"),
        ("likes(X, Y", "Expected ')'"),
        ("[1, 2", "in list"),
    ])
    def test_error_messages(self, text, message):
        result = parse_term(text)
        assert not result.success
        assert result.value is None
        assert message in result.error.message

    def test_error_position(self):
        result = parse_term("foo(a, )")
        assert not result.success
        assert result.error.position == 7
        assert "position 7" in str(result.error)

    def test_unterminated_query(self):
        assert not parse_query("likes(X, Y").success

    def test_program_error_is_reported(self):
        result = parse_program("foo(a).\nbar(b")
        assert not result.success
        assert result.error is not None
