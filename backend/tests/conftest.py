"""
Pytest Configuration and Fixtures

Shared fixtures for interpretation engine tests.
"""
import copy
import json

import pytest

from pgx.services.interpretation import config as config_module
from pgx.services.interpretation import registry as registry_module
from pgx.services.interpretation.registry import BUNDLED_RULE_TABLES, RuleTableRegistry


@pytest.fixture(autouse=True)
def reset_globals():
    """Each test starts from default config and the bundled rule tables."""
    config_module.reset_config()
    registry_module._registry_instance = None
    yield
    config_module.reset_config()
    registry_module._registry_instance = None


@pytest.fixture
def bundled_data() -> dict:
    """Raw contents of the bundled rule_tables.json (a fresh copy per test)."""
    with open(BUNDLED_RULE_TABLES, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def registry() -> RuleTableRegistry:
    return RuleTableRegistry.from_file(BUNDLED_RULE_TABLES)


def _rule(rule_id, first, second, genotype, phenotype_key, phenotype, th=None):
    translations = {"th": th} if th else {}
    return {
        "rule_id": rule_id,
        "marker_values": {"Probe A": first, "Probe B": second},
        "genotype_label": genotype,
        "phenotype": {"key": phenotype_key, "default": phenotype, "translations": translations},
        "recommendation": {"key": f"{phenotype_key}_rec", "default": f"Advice for {genotype}", "translations": {}},
    }


@pytest.fixture
def small_table_data() -> dict:
    """A two-marker test gene, valid as written."""
    return {
        "version": "test-1",
        "genes": [
            {
                "kind": "multi_marker",
                "gene_key": "TESTGENE",
                "markers": [
                    {"name": "Probe A", "column": "PROBE_A", "options": [{"value": "C/C"}, {"value": "C/T"}]},
                    {"name": "Probe B", "column": "PROBE_B", "options": [{"value": "G/G"}, {"value": "G/A"}]},
                ],
                "storage": {
                    "table": "TESTGENE",
                    "genotype_column": "Genotype",
                    "phenotype_column": "Predict_Pheno",
                    "recommendation_column": "Recommend",
                },
                "rules": [
                    _rule("t_wt", "C/C", "G/G", "*1/*1", "normal_metabolizer", "Normal Metabolizer", "ปกติ"),
                    _rule("t_het", "C/T", "G/G", "*1/*2", "intermediate_metabolizer", "Intermediate Metabolizer"),
                ],
            }
        ],
    }


@pytest.fixture
def ambiguous_table_data(small_table_data) -> dict:
    """small_table_data plus a second rule for the wild-type combination."""
    data = copy.deepcopy(small_table_data)
    data["genes"][0]["rules"].append(
        _rule("t_wt_dup", "C/C", "G/G", "*1/*1b", "normal_metabolizer", "Normal Metabolizer (duplicate)")
    )
    return data
