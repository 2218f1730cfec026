"""
Tests for the legacy gene table import.
"""

import json

import pandas as pd
import pytest
from pgx.services.interpretation.models import Locale
from pgx.services.interpretation.registry import RuleTableRegistry
from pgx.utils.rule_table_etl import (
    LegacyTableImporter,
    build_ui_mappings,
    main,
    save_json,
    slugify,
)


@pytest.fixture
def importer(registry):
    return LegacyTableImporter(registry)


@pytest.fixture
def tpmt_export(tmp_path, registry):
    normal = registry.get_rule("TPMT", "tpmt_1_1")
    rows = [
        {
            "TPMTx3C_719A": "G/G",
            "Predict_Geno": "*1/*1",
            "Predict_Pheno": normal.phenotype.default,
            "Recommend": normal.recommendation.default,
        },
        {
            "TPMTx3C_719A": " A/G ",
            "Predict_Geno": "*1/*3C",
            "Predict_Pheno": "Intermediate Metabolizer (reviewed)",
            "Recommend": "Start at 30-80% of the normal dose.",
        },
        {
            "TPMTx3C_719A": "A/A",
            "Predict_Geno": "*3C/*3C",
            "Predict_Pheno": "",
            "Recommend": "",
        },
    ]
    path = tmp_path / "TPMT.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_slugify():
    assert slugify("Poor Metabolizer") == "poor_metabolizer"
    assert slugify("HLA-B*15:02") == "hla_b_15_02"
    assert slugify("  ") == ""


class TestRulesFromExport:

    def test_rows_become_rules(self, importer, tpmt_export):
        rules = importer.rules_from_frame("TPMT", importer.read_export(tpmt_export))

        # Row without a phenotype is skipped
        assert [r["rule_id"] for r in rules] == ["tpmt_1", "tpmt_2"]
        assert rules[1]["marker_values"] == {"TPMT*3C (719A>G)": "A/G"}
        assert rules[1]["genotype_label"] == "*1/*3C"

    def test_unchanged_text_keeps_translations(self, importer, tpmt_export, registry):
        rules = importer.rules_from_frame("TPMT", importer.read_export(tpmt_export))
        previous = registry.get_rule("TPMT", "tpmt_1_1")

        assert rules[0]["phenotype"] == previous.phenotype.model_dump()
        assert rules[0]["activity_score"] == previous.activity_score

    def test_changed_text_gets_new_key(self, importer, tpmt_export):
        rules = importer.rules_from_frame("TPMT", importer.read_export(tpmt_export))
        phenotype = rules[1]["phenotype"]

        assert phenotype["key"] == "intermediate_metabolizer_reviewed"
        assert phenotype["translations"] == {}

    def test_missing_columns(self, importer):
        df = pd.DataFrame([{"TPMTx3C_719A": "G/G"}])
        with pytest.raises(ValueError) as exc:
            importer.rules_from_frame("TPMT", df)
        assert "Predict_Pheno" in str(exc.value)

    def test_hla_rows_filtered_by_locus(self, importer):
        df = pd.DataFrame([
            {"HLA_Gene": "HLA-B*15:02", "status": "Positive", "phenotype": "High risk", "recommend": "Avoid"},
            {"HLA_Gene": "HLA-B*58:01", "status": "Positive", "phenotype": "Other locus", "recommend": "n/a"},
            {"HLA_Gene": "HLA-B*15:02", "status": "Negative", "phenotype": "Normal risk", "recommend": "Use"},
        ])
        rules = importer.rules_from_frame("HLA-B*15:02", df)

        assert len(rules) == 2
        assert rules[0]["genotype_label"] == "HLA-B*15:02 positive"
        assert rules[1]["marker_values"] == {"HLA-B*15:02 status": "Negative"}

    def test_import_gene_builds_valid_table(self, importer, tpmt_export):
        data = importer.import_gene("TPMT", tpmt_export)
        assert data["kind"] == "multi_marker"
        assert data["storage"]["genotype_column"] == "Predict_Geno"
        assert len(data["rules"]) == 2


class TestRuleSet:

    def test_other_genes_kept(self, importer, tpmt_export, registry):
        data = importer.build_rule_set({"TPMT": tpmt_export}, version="test-2")
        rebuilt = RuleTableRegistry.from_dict(data)

        assert rebuilt.version == "test-2"
        assert rebuilt.supported_genes() == registry.supported_genes()
        assert len(rebuilt.get_rules("TPMT")) == 2
        assert rebuilt.get_rules("CYP2D6") == registry.get_rules("CYP2D6")


class TestUiMappings:

    def test_shape(self, registry):
        mappings = build_ui_mappings(registry)
        hla = mappings["HLA-B*15:02"]

        assert [o["value"] for o in hla["markers"][0]["options"]] == ["Positive", "Negative"]
        positive = hla["genotypes"][0]
        assert positive["markers"] == {"HLA-B*15:02 status": "Positive"}
        assert positive["phenotype_en"] == registry.get_rule("HLA-B*15:02", "hla_b_1502_positive").phenotype.text(Locale.EN)

    def test_thai_falls_back_to_default(self, registry):
        rule = registry.get_rule("CYP2C19", "cyp2c19_3_17")
        entry = next(g for g in build_ui_mappings(registry)["CYP2C19"]["genotypes"] if g["genotype"] == "*3/*17")
        assert entry["recommendation_th"] == rule.recommendation.default

    def test_save_json_keeps_thai(self, tmp_path, registry):
        path = save_json(build_ui_mappings(registry), tmp_path / "out" / "mappings.json")
        assert "ผู้ที่มีการเปลี่ยนแปลงยาปกติ" in path.read_text(encoding="utf-8")


def test_main_writes_outputs(tmp_path, tpmt_export):
    output = tmp_path / "rule_tables.json"
    ui = tmp_path / "mappings.json"

    main([
        "--export", f"TPMT={tpmt_export}",
        "--output", str(output),
        "--version", "2025.2",
        "--ui-mappings", str(ui),
    ])

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["version"] == "2025.2"
    assert "TPMT" in json.loads(ui.read_text(encoding="utf-8"))


def test_main_rejects_bad_export_argument(tmp_path):
    with pytest.raises(SystemExit):
        main(["--export", "TPMT", "--version", "x", "--output", str(tmp_path / "o.json")])
