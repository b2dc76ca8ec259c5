"""
tests/test_values.py - Host Value Conversion Tests

Key Properties Tested:
    - Python values map to the expected term kinds
    - Terms convert back to plain Python values
    - Key/value records survive a round-trip
"""

import pytest

from symbolic_core.logic import (
    Atom,
    Compound,
    Num,
    PList,
    Str,
    Var,
    make_list,
    term_from_value,
    term_to_value,
)

# =============================================================================
# TESTS: VALUE -> TERM
# =============================================================================


class TestFromValue:
    """term_from_value."""

    @pytest.mark.parametrize("value,expected", [
        (None, Atom("nil")),
        (True, Atom("true")),
        (False, Atom("false")),
        (42, Num(42)),
        (2.5, Num(2.5)),
        ("hello", Atom("hello")),
        ("Hello World", Str("Hello World")),
        ("", Str("")),
    ])
    def test_scalars(self, value, expected):
        assert term_from_value(value) == expected

    def test_bool_is_not_a_number(self):
        assert not isinstance(term_from_value(True), Num)

    def test_list(self):
        assert term_from_value([1, "a", None]) == PList((Num(1), Atom("a"), Atom("nil")))

    def test_tuple(self):
        assert term_from_value((1, 2)) == PList((Num(1), Num(2)))

    def test_dict(self):
        expected = PList((Compound("=", (Atom("name"), Atom("tom"))),))
        assert term_from_value({"name": "tom"}) == expected

    def test_terms_pass_through(self):
        term = Compound("f", (Var("X"),))
        assert term_from_value(term) is term

    def test_unsupported(self):
        with pytest.raises(TypeError):
            term_from_value(object())


# =============================================================================
# TESTS: TERM -> VALUE
# =============================================================================


class TestToValue:
    """term_to_value."""

    def test_scalars(self):
        assert term_to_value(Atom("bob")) == "bob"
        assert term_to_value(Atom("nil")) is None
        assert term_to_value(Atom("true")) is True
        assert term_to_value(Num(3)) == 3
        assert term_to_value(Str("x y")) == "x y"

    def test_unbound_variable(self):
        assert term_to_value(Var("X")) == "?X"

    def test_compound(self):
        term = Compound("parent", (Atom("tom"), Var("X")))
        assert term_to_value(term) == {"functor": "parent", "args": ["tom", "?X"]}

    def test_list(self):
        assert term_to_value(PList((Num(1), Num(2)))) == [1, 2]
        assert term_to_value(PList(())) == []

    def test_partial_list_keeps_tail(self):
        assert term_to_value(make_list([Num(1)], Var("T"))) == [1, "?T"]

    def test_record_round_trip(self):
        record = {"name": "tom", "age": 42, "tags": ["a", "b"], "active": True}
        assert term_to_value(term_from_value(record)) == record

    def test_deeply_nested_term(self):
        term = Num(0)
        for _ in range(3000):
            term = Compound("s", (term,))
        value = term_to_value(term)
        depth = 0
        while isinstance(value, dict):
            assert value["functor"] == "s"
            value = value["args"][0]
            depth += 1
        assert (depth, value) == (3000, 0)

    def test_nested_records(self):
        record = {"outer": {"inner": [1, {"leaf": "x"}]}}
        assert term_to_value(term_from_value(record)) == record
