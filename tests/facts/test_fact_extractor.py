"""Tests for FactsEngine answer -> fact extraction."""

from datetime import datetime

import pytest

from assessment.schema import Answer
from conftest import make_fact, profile_of
from facts.extractor import FactsEngine, MappingConditions
from facts.models import FactsProfile


def _answer(question_id="q1", value="yes"):
    return Answer(question_id=question_id, value=value, timestamp=datetime(2026, 1, 5))


def _emit(fact_id, value, confidence=0.8, when=None):
    def extract(_value, _profile):
        return [make_fact(id=fact_id, value=value, confidence=confidence, established_at=when)]

    return extract


@pytest.fixture
def engine():
    return FactsEngine()


class TestRegistration:
    def test_register_and_count(self, engine):
        engine.register_mapping("q1", _emit("a", 1))
        engine.register_mapping("q1", _emit("b", 2))
        engine.register_mapping("q2", _emit("c", 3))
        assert engine.mapping_count() == 3
        assert engine.registered_questions() == ["q1", "q2"]
        assert len(engine.mappings_for("q1")) == 2
        assert engine.mappings_for("missing") == []


class TestExtraction:
    def test_unmapped_question_produces_nothing(self, engine):
        result = engine.extract_facts_from_answer(_answer("nobody"), FactsProfile())
        assert not result.changed
        assert result.conflicts == []

    def test_new_fact_is_established(self, engine):
        engine.register_mapping("q1", _emit("vpn", True))
        result = engine.extract_facts_from_answer(_answer(), FactsProfile())
        assert [f.id for f in result.established] == ["vpn"]
        assert result.updated == []

    def test_same_value_is_updated(self, engine):
        engine.register_mapping("q1", _emit("vpn", True))
        result = engine.extract_facts_from_answer(_answer(), profile_of(vpn=True))
        assert result.established == []
        assert [f.id for f in result.updated] == ["vpn"]

    def test_conflict_won_by_new_fact_is_updated(self, engine):
        engine.register_mapping("q1", _emit("os", "mac", confidence=0.99))
        result = engine.extract_facts_from_answer(_answer(), profile_of(os="windows"))
        assert len(result.conflicts) == 1
        assert [f.value for f in result.updated] == ["mac"]

    def test_conflict_won_by_existing_fact_changes_nothing(self, engine):
        engine.register_mapping("q1", _emit("os", "mac", confidence=0.1))
        result = engine.extract_facts_from_answer(_answer(), profile_of(os="windows"))
        assert len(result.conflicts) == 1
        assert result.updated == []
        assert not result.changed

    def test_throwing_mapping_does_not_stop_others(self, engine):
        def broken(_value, _profile):
            raise RuntimeError("bad mapping")

        engine.register_mapping("q3", _emit("first", 1))
        engine.register_mapping("q3", broken)
        engine.register_mapping("q3", _emit("last", 2))

        result = engine.extract_facts_from_answer(_answer("q3"), FactsProfile())

        assert sorted(f.id for f in result.established) == ["first", "last"]
        assert engine.metrics.count("facts.extraction_failed") == 1

    def test_later_mapping_wins_for_same_id(self, engine):
        engine.register_mapping("q1", _emit("level", "basic"))
        engine.register_mapping("q1", _emit("level", "advanced"))
        result = engine.extract_facts_from_answer(_answer(), FactsProfile())
        assert [f.value for f in result.established] == ["advanced"]

    def test_input_profile_untouched(self, engine):
        engine.register_mapping("q1", _emit("vpn", True))
        profile = profile_of(os="windows")
        engine.extract_facts_from_answer(_answer(), profile)
        assert list(profile.facts) == ["os"]
        assert profile.revision == 0

    def test_metrics_counted(self, engine):
        engine.register_mapping("q1", _emit("os", "mac", confidence=0.99))
        engine.extract_facts_from_answer(_answer(), profile_of(os="windows"))
        assert engine.metrics.count("facts.answers_processed") == 1
        assert engine.metrics.count("facts.conflicts") == 1


class TestMappingConditions:
    def test_answer_value_condition(self, engine):
        engine.register_mapping(
            "q1", _emit("vpn", True), conditions=MappingConditions(answer_value="yes")
        )
        assert engine.extract_facts_from_answer(_answer(value="yes"), FactsProfile()).changed
        assert not engine.extract_facts_from_answer(_answer(value="no"), FactsProfile()).changed

    def test_answer_value_none_is_a_real_condition(self, engine):
        engine.register_mapping(
            "q1", _emit("skipped", True), conditions=MappingConditions(answer_value=None)
        )
        assert engine.extract_facts_from_answer(_answer(value=None), FactsProfile()).changed
        assert not engine.extract_facts_from_answer(_answer(value="yes"), FactsProfile()).changed

    def test_option_id_condition(self, engine):
        engine.register_mapping(
            "q1", _emit("os", "mac"), conditions=MappingConditions(option_id="mac")
        )
        assert not engine.extract_facts_from_answer(_answer(value="windows"), FactsProfile()).changed
        assert engine.extract_facts_from_answer(_answer(value="mac"), FactsProfile()).changed

    def test_requires_facts(self, engine):
        engine.register_mapping(
            "q1", _emit("edr", True), conditions=MappingConditions(requires_facts=("os",))
        )
        assert not engine.extract_facts_from_answer(_answer(), FactsProfile()).changed
        assert engine.extract_facts_from_answer(_answer(), profile_of(os="windows")).changed


class TestInvalidation:
    def test_invalidates_only_held_facts(self, engine):
        engine.register_mapping("q1", _emit("vpn", False), invalidates=["vpn_provider", "never_set"])
        result = engine.extract_facts_from_answer(_answer(), profile_of(vpn_provider="acme"))
        assert result.invalidated == ["vpn_provider"]

    def test_reproduced_fact_is_not_invalidated(self, engine):
        engine.register_mapping("q1", _emit("os", "windows"), invalidates=["os"])
        result = engine.extract_facts_from_answer(_answer(), profile_of(os="windows"))
        assert result.invalidated == []
        assert [f.id for f in result.updated] == ["os"]
