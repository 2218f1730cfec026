"""
Rule table ETL (Extract, Transform, Load) script.
Converts exports of the legacy per-gene database tables (CSV or Excel) into the
rule_tables.json resource, and generates the client-side marker mapping file.

Each legacy table row is one rule: marker columns (e.g. CYPx2_681G) plus the
interpretation columns (e.g. Genotype, Predict_Pheno, Recommend). Column names
are taken from the current rule table resource, so the export must use the
same headers as the database.
"""

import argparse
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from pgx.services.interpretation.models import CategoricalTable, Locale
from pgx.services.interpretation.registry import (
    BUNDLED_RULE_TABLES,
    RuleTableRegistry,
    get_rule_registry,
    parse_table,
    validate_table,
)

logger = logging.getLogger(__name__)


def slugify(text: str) -> str:
    """Locale-independent key from display text (e.g. 'Poor Metabolizer' -> 'poor_metabolizer')."""
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")[:60]


class LegacyTableImporter:
    """Builds rule entries from legacy gene table exports."""

    def __init__(self, registry: Optional[RuleTableRegistry] = None):
        self.registry = registry or get_rule_registry()

    def read_export(self, path: Union[str, Path]) -> pd.DataFrame:
        """Read a CSV or Excel export with every cell as a stripped string."""
        path = Path(path)
        if path.suffix.lower() in (".xlsx", ".xls"):
            df = pd.read_excel(path, dtype=str)
        else:
            df = pd.read_csv(path, dtype=str)
        df = df.fillna("")
        return df.apply(lambda col: col.str.strip())

    def rules_from_frame(self, gene_key: str, df: pd.DataFrame) -> List[Dict[str, Any]]:
        """Convert one gene table export into rule dicts, in row order."""
        table = self.registry.get_table(gene_key)
        storage = table.storage
        is_categorical = isinstance(table, CategoricalTable)

        required = [m.column for m in table.markers] + [storage.phenotype_column, storage.recommendation_column]
        if storage.genotype_column:
            required.append(storage.genotype_column)
        if is_categorical and storage.locus_column:
            required.append(storage.locus_column)
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise ValueError(f"{gene_key} export is missing columns: {', '.join(missing)}")

        existing = {table.match_key(r.marker_values): r for r in table.rules}
        rules: List[Dict[str, Any]] = []

        for row_num, row in enumerate(df.to_dict(orient="records"), start=1):
            if is_categorical and storage.locus_column and row[storage.locus_column] != table.locus_label:
                continue

            marker_values = {m.name: row[m.column] for m in table.markers}
            if any(not v for v in marker_values.values()):
                logger.warning("%s row %d skipped: blank marker cell", gene_key, row_num)
                continue

            phenotype_text = row[storage.phenotype_column]
            recommendation_text = row[storage.recommendation_column]
            if not phenotype_text:
                logger.warning("%s row %d skipped: no phenotype", gene_key, row_num)
                continue

            if storage.genotype_column and row[storage.genotype_column]:
                genotype_label = row[storage.genotype_column]
            elif is_categorical:
                genotype_label = f"{table.locus_label} {marker_values[table.status_marker.name].lower()}"
            else:
                logger.warning("%s row %d skipped: no genotype", gene_key, row_num)
                continue

            # Keep translations of an existing rule whose default text is unchanged
            previous = existing.get(table.match_key(marker_values))

            rules.append({
                "rule_id": f"{slugify(gene_key)}_{row_num}",
                "marker_values": marker_values,
                "genotype_label": genotype_label,
                "activity_score": previous.activity_score if previous else None,
                "phenotype": self._text(phenotype_text, previous.phenotype if previous else None, f"phenotype_{row_num}"),
                "recommendation": self._text(
                    recommendation_text, previous.recommendation if previous else None, f"recommendation_{row_num}"
                ),
            })

        logger.info("%s: %d rules imported from %d rows", gene_key, len(rules), len(df))
        return rules

    @staticmethod
    def _text(default: str, previous, fallback_key: str) -> Dict[str, Any]:
        if previous is not None and previous.default == default:
            return previous.model_dump()
        return {"key": slugify(default) or fallback_key, "default": default, "translations": {}}

    def import_gene(self, gene_key: str, path: Union[str, Path]) -> Dict[str, Any]:
        """Return the gene's table dict with rules replaced by the export's rows."""
        table = self.registry.get_table(gene_key)
        data = table.model_dump(mode="json")
        data["rules"] = self.rules_from_frame(gene_key, self.read_export(path))

        problems, ambiguities = validate_table(parse_table(data))
        for problem in problems:
            logger.warning("%s: %s", gene_key, problem)
        for key, rule_ids in ambiguities.items():
            logger.warning("%s: combination %s matched by rules %s", gene_key, list(key), rule_ids)
        return data

    def build_rule_set(self, exports: Dict[str, Union[str, Path]], version: str) -> Dict[str, Any]:
        """Full resource dict; genes without an export keep their current rules."""
        genes = []
        for table in self.registry.tables():
            if table.gene_key in exports:
                genes.append(self.import_gene(table.gene_key, exports[table.gene_key]))
            else:
                genes.append(table.model_dump(mode="json"))
        return {
            "version": version,
            "source": "Legacy gene table export",
            "genes": genes,
        }


def build_ui_mappings(registry: Optional[RuleTableRegistry] = None) -> Dict[str, Any]:
    """
    Client-side marker and genotype mapping, generated from the registry.
    Shape: {gene_key: {markers: [...], genotypes: [...]}} with en/th text.
    """
    registry = registry or get_rule_registry()
    mappings: Dict[str, Any] = {}
    for table in registry.tables():
        mappings[table.gene_key] = {
            "markers": [
                {
                    "name": m.name,
                    "description": m.description,
                    "options": [{"value": o.value, "label": o.display()} for o in m.options],
                }
                for m in table.markers
            ],
            "genotypes": [
                {
                    "genotype": r.genotype_label,
                    "markers": dict(r.marker_values),
                    "phenotype_en": r.phenotype.text(Locale.EN),
                    "phenotype_th": r.phenotype.text(Locale.TH),
                    "recommendation_en": r.recommendation.text(Locale.EN),
                    "recommendation_th": r.recommendation.text(Locale.TH),
                }
                for r in table.rules
            ],
        }
    return mappings


def save_json(data: Dict[str, Any], output_file: Union[str, Path]) -> Path:
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return output_file


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Build rule_tables.json from legacy gene table exports")
    parser.add_argument(
        "--export", action="append", default=[], metavar="GENE=PATH",
        help="Export file for a gene, e.g. CYP2C19=exports/CYP2C19.csv (repeatable)"
    )
    parser.add_argument("--output", default=str(BUNDLED_RULE_TABLES), help="Rule table JSON to write")
    parser.add_argument("--version", required=True, help="Version string for the new resource")
    parser.add_argument("--ui-mappings", default=None, help="Also write the client mapping JSON here")
    args = parser.parse_args(argv)

    exports = {}
    for item in args.export:
        gene_key, sep, path = item.partition("=")
        if not sep:
            parser.error(f"--export expects GENE=PATH, got {item}")
        exports[gene_key] = path

    importer = LegacyTableImporter()
    data = importer.build_rule_set(exports, args.version)
    output = save_json(data, args.output)
    logger.info("Saved rule tables to %s", output)

    if args.ui_mappings:
        registry = RuleTableRegistry.from_dict(data, strict=False)
        save_json(build_ui_mappings(registry), args.ui_mappings)
        logger.info("Saved UI mappings to %s", args.ui_mappings)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
