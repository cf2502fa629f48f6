"""Tests for catalog parsing and the tagged expectation variant."""

import json

import pytest
import yaml

from assessment.catalog import CatalogError, load_catalog, parse_catalog
from assessment.schema import AnyValue, Conditions, Exact, OneOf, Question, parse_expectation


class TestParseExpectation:
    @pytest.mark.parametrize("raw", ["*", "any"])
    def test_wildcard_sentinels(self, raw):
        assert parse_expectation(raw) == AnyValue()

    def test_list_is_one_of(self):
        assert parse_expectation(["mac", "linux"]) == OneOf(values=("mac", "linux"))

    def test_scalar_is_exact(self):
        assert parse_expectation("windows") == Exact(value="windows")
        assert parse_expectation(True) == Exact(value=True)

    def test_explicit_exact_star_is_literal(self):
        assert parse_expectation({"exact": "*"}) == Exact(value="*")

    def test_tagged_dicts(self):
        assert parse_expectation({"kind": "any"}) == AnyValue()
        assert parse_expectation({"kind": "one_of", "values": [1, 2]}) == OneOf(values=(1, 2))
        assert parse_expectation({"one_of": ["a"]}) == OneOf(values=("a",))

    def test_conditions_parse_on_load(self):
        conditions = Conditions.model_validate(
            {"include": {"os": "windows", "browser": "*"}, "exclude": {"vpn": [True]}}
        )
        assert isinstance(conditions.include["os"], Exact)
        assert isinstance(conditions.include["browser"], AnyValue)
        assert isinstance(conditions.exclude["vpn"], OneOf)
        assert not conditions.is_empty()
        assert Conditions().is_empty()


class TestQuestion:
    def test_max_points_uses_best_option(self):
        q = Question(id="q", options=[{"id": "a", "points": 5}, {"id": "b", "points": 20}])
        assert q.max_points() == 20
        assert q.best_option().id == "b"

    def test_max_points_falls_back_to_weight(self):
        assert Question(id="q", weight=10).max_points() == 10

    def test_find_option_by_id_then_text(self):
        q = Question(id="q", options=[{"id": "yes", "text": "Yes please"}])
        assert q.find_option("yes").id == "yes"
        assert q.find_option("Yes please").id == "yes"
        assert q.find_option("nope") is None

    def test_quick_win_from_tag_or_flag(self):
        assert Question(id="q", tags=["quickwin"]).is_quick_win
        assert Question(id="q", quick_win=True).is_quick_win
        assert not Question(id="q").is_quick_win


class TestParseCatalog:
    def test_valid_catalog(self, bank):
        assert bank.version == 3
        assert [q.id for q in bank.questions()] == [
            "os_confirm",
            "auto_updates",
            "defender",
            "password_manager",
        ]
        assert bank.domain_of("password_manager") == "accounts"
        assert bank.question("defender").conditions.include["os"] == Exact(value="windows")
        assert bank.tiers[0].name == "basics"

    def test_duplicate_question_ids_rejected(self, catalog_data):
        extra = {"id": "os_confirm", "text": "again"}
        catalog_data["domains"][1]["levels"][0]["questions"].append(extra)
        with pytest.raises(CatalogError, match="Duplicate question id"):
            parse_catalog(catalog_data)

    def test_duplicate_tier_orders_rejected(self, catalog_data):
        catalog_data["tiers"][2]["order"] = 2
        with pytest.raises(CatalogError):
            parse_catalog(catalog_data)

    def test_catalog_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_catalog({"domains": "not a list"})

    def test_empty_catalog(self):
        bank = parse_catalog({})
        assert bank.questions() == []
        assert bank.tiers == []


class TestLoadCatalog:
    def test_yaml(self, tmp_path, catalog_data):
        path = tmp_path / "catalog.yaml"
        path.write_text(yaml.safe_dump(catalog_data))
        assert len(load_catalog(path).questions()) == 4

    def test_json(self, tmp_path, catalog_data):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog_data))
        assert len(load_catalog(path).tiers) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_catalog(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("domains: [unclosed")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_example_catalog_loads(self, example_catalog_path):
        bank = load_catalog(example_catalog_path)
        assert bank.question("auto_updates").expiration == {"yes": None, "default": 30}
        assert isinstance(bank.question("mfa").conditions.exclude["mfa_everywhere"], AnyValue)
        assert [t.id for t in bank.tiers] == ["basics", "hardened", "guardian"]
