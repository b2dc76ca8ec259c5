"""
tests/test_knowledge_base.py - Knowledge Base Tests

Key Properties Tested:
    - Insertion order and indexing by predicate
    - Retraction by unification
    - Program loading is all-or-nothing
    - JSON and YAML persistence round-trip
"""

import pytest

from symbolic_core.logic import (
    Atom,
    Clause,
    Compound,
    KnowledgeBase,
    Num,
    ParseError,
    Var,
)


def parent(x, y):
    return Compound("parent", (Atom(x), Atom(y)))


# =============================================================================
# TESTS: INSERTION AND LOOKUP
# =============================================================================


class TestInsertion:
    """assert_fact, assert_rule, asserta."""

    def test_assert_fact(self):
        kb = KnowledgeBase()
        kb.assert_fact(parent("tom", "bob"))
        assert len(kb) == 1
        assert kb.get_clauses("parent", 2)[0].head == parent("tom", "bob")
        assert kb.has_predicate("parent", 2)
        assert not kb.has_predicate("parent", 1)

    def test_atom_fact(self):
        kb = KnowledgeBase()
        kb.assert_fact(Atom("sunny"))
        assert kb.has_predicate("sunny", 0)

    def test_assert_rule(self):
        kb = KnowledgeBase()
        clause = kb.assert_rule(
            Compound("child", (Var("X"), Var("Y"))),
            Compound("parent", (Var("Y"), Var("X"))),
        )
        assert clause.is_rule
        assert kb.rule_count == 1
        assert kb.fact_count == 0

    def test_rule_needs_body(self):
        with pytest.raises(ValueError):
            KnowledgeBase().assert_rule(Compound("p", ()))

    def test_invalid_head(self):
        with pytest.raises(ValueError):
            KnowledgeBase().assert_fact(Num(1))

    def test_order(self):
        kb = KnowledgeBase()
        kb.assert_fact(parent("tom", "bob"))
        kb.assert_fact(parent("tom", "liz"))
        kb.asserta(Clause(parent("ann", "tom")))
        heads = [c.head for c in kb.get_clauses("parent", 2)]
        assert heads == [parent("ann", "tom"), parent("tom", "bob"), parent("tom", "liz")]

    def test_get_clauses_is_snapshot(self, family_kb):
        snapshot = family_kb.get_clauses("parent", 2)
        family_kb.assert_fact(parent("jim", "sue"))
        assert len(snapshot) == 5
        assert len(family_kb.get_clauses("parent", 2)) == 6

    def test_predicates(self, family_kb):
        assert family_kb.predicates() == ["parent/2", "grandparent/2", "ancestor/2"]

    def test_stats(self, family_kb):
        stats = family_kb.stats
        assert stats["facts_added"] == 5
        assert stats["rules_added"] == 3


# =============================================================================
# TESTS: RETRACTION
# =============================================================================


class TestRetraction:
    """retract and retract_all."""

    def test_retract_first_match(self, family_kb):
        removed = family_kb.retract(Compound("parent", (Atom("tom"), Var("X"))))
        assert removed.head == parent("tom", "bob")
        heads = [c.head for c in family_kb.get_clauses("parent", 2)]
        assert parent("tom", "bob") not in heads
        assert parent("tom", "liz") in heads

    def test_retract_no_match(self, family_kb):
        assert family_kb.retract(parent("nobody", "bob")) is None
        assert len(family_kb) == 8

    def test_bare_head_does_not_match_rules(self, family_kb):
        assert family_kb.retract(Compound("grandparent", (Var("A"), Var("B")))) is None

    def test_retract_rule_by_clause(self, family_kb):
        rule = family_kb.get_clauses("grandparent", 2)[0]
        assert family_kb.retract(rule) == rule
        assert not family_kb.has_predicate("grandparent", 2)

    def test_retract_all(self, family_kb):
        assert family_kb.retract_all("parent", 2) == 5
        assert family_kb.get_clauses("parent", 2) == []
        assert family_kb.stats["retracted"] == 5

    def test_clear(self, family_kb):
        family_kb.clear()
        assert len(family_kb) == 0


# =============================================================================
# TESTS: LOADING
# =============================================================================


class TestLoading:
    """Program text loading."""

    def test_load_counts(self):
        result = KnowledgeBase().load_program("a(1). a(2). b(X) :- a(X).")
        assert result.success
        assert result.clauses_loaded == 3

    def test_parse_error_adds_nothing(self):
        kb = KnowledgeBase()
        result = kb.load_program("a(1). a(2 .")
        assert not result.success
        assert result.clauses_loaded == 0
        assert isinstance(result.errors[0], ParseError)
        assert len(kb) == 0

    def test_listing(self):
        kb = KnowledgeBase()
        kb.load_program("a(1). b(X) :- a(X).")
        assert kb.listing() == "a(1).\nb(X) :- a(X)."


# =============================================================================
# TESTS: PERSISTENCE
# =============================================================================

PROGRAM = """
len([], 0).
len([_|T], N) :- len(T, M), N is M + 1.
greeting("hello world").
ratio(0.5).
"""


class TestPersistence:
    """Dictionary, JSON and YAML round-trips."""

    @pytest.fixture
    def kb(self):
        kb = KnowledgeBase()
        assert kb.load_program(PROGRAM).success
        return kb

    def test_dict_round_trip(self, kb):
        restored = KnowledgeBase.from_dict(kb.to_dict())
        assert list(restored) == list(kb)

    def test_json_round_trip(self, kb, tmp_path):
        path = str(tmp_path / "kb.json")
        kb.to_json(path)
        assert list(KnowledgeBase.from_json(path)) == list(kb)

    def test_yaml_round_trip(self, kb, tmp_path):
        path = str(tmp_path / "kb.yaml")
        kb.to_yaml(path)
        assert list(KnowledgeBase.from_yaml(path)) == list(kb)

    def test_dict_shape(self):
        kb = KnowledgeBase()
        kb.assert_fact(Compound("p", (Atom("a"),)))
        assert kb.to_dict() == {
            "clauses": [{
                "head": {"type": "compound", "functor": "p", "args": [{"type": "atom", "value": "a"}]},
                "body": [],
            }]
        }
