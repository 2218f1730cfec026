"""
Rule Table Registry - process-wide, read-only holder of per-gene rule tables.
Loads rule_tables.json once at startup, validates every table, and serves
markers and rules by gene key.
"""

import json
import logging
from collections import defaultdict
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import TypeAdapter

from .models import (
    CategoricalTable,
    GenotypeRule,
    Marker,
    MultiMarkerTable,
    RuleTable,
    RuleTableSet,
)
from .exceptions import RuleTableError, UnknownGene

logger = logging.getLogger(__name__)

BUNDLED_RULE_TABLES = Path(__file__).parent / "data" / "rule_tables.json"

_table_adapter = TypeAdapter(RuleTable)


def validate_table(table: Union[MultiMarkerTable, CategoricalTable]) -> Tuple[List[str], Dict[Tuple[str, ...], List[str]]]:
    """
    Check a rule table for authoring errors.
    Returns (problems, ambiguities) where ambiguities maps a match key to the
    ids of every rule that shares it, in declaration order.
    """
    problems: List[str] = []

    marker_names = [m.name for m in table.markers]
    if len(set(marker_names)) != len(marker_names):
        problems.append("duplicate marker names")

    columns = [m.column for m in table.markers]
    if len(set(columns)) != len(columns):
        problems.append("duplicate storage columns")

    allowed = {m.name: set(m.allowed_values) for m in table.markers}
    seen_ids = set()
    by_key: Dict[Tuple[str, ...], List[str]] = defaultdict(list)

    for rule in table.rules:
        if rule.rule_id in seen_ids:
            problems.append(f"duplicate rule id {rule.rule_id}")
        seen_ids.add(rule.rule_id)

        if set(rule.marker_values) != set(marker_names):
            problems.append(
                f"rule {rule.rule_id} names markers {sorted(rule.marker_values)}, expected {sorted(marker_names)}"
            )
            continue

        bad = [
            f"{name}={value}" for name, value in rule.marker_values.items()
            if value not in allowed[name]
        ]
        if bad:
            problems.append(f"rule {rule.rule_id} uses values outside the marker options: {', '.join(bad)}")
            continue

        by_key[table.match_key(rule.marker_values)].append(rule.rule_id)

    ambiguities = {key: ids for key, ids in by_key.items() if len(ids) > 1}
    return problems, ambiguities


class RuleTableRegistry:
    """
    Immutable snapshot of all rule tables.
    Callers share one instance by reference; nothing here mutates after __init__.
    """

    def __init__(self, rule_set: RuleTableSet, strict: bool = True):
        tables: Dict[str, Union[MultiMarkerTable, CategoricalTable]] = {}

        for table in rule_set.genes:
            if table.gene_key in tables:
                raise RuleTableError(table.gene_key, ["gene declared more than once"])

            problems, ambiguities = validate_table(table)
            for key, rule_ids in ambiguities.items():
                problems.append(f"combination {list(key)} matched by rules {rule_ids}")

            if problems:
                if strict:
                    raise RuleTableError(table.gene_key, problems)
                # Non-strict: keep the table, first-declared rule wins at match time
                for problem in problems:
                    logger.warning("Rule table %s data-integrity problem: %s", table.gene_key, problem)

            tables[table.gene_key] = table

        self._tables: Mapping[str, Union[MultiMarkerTable, CategoricalTable]] = MappingProxyType(tables)
        self.version = rule_set.version
        self.source = rule_set.source

    # ===== Construction =====

    @classmethod
    def from_dict(cls, data: Dict, strict: bool = True) -> "RuleTableRegistry":
        return cls(RuleTableSet.model_validate(data), strict=strict)

    @classmethod
    def from_file(cls, path: Union[str, Path], strict: bool = True) -> "RuleTableRegistry":
        """Load a registry from a rule table JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rule table file not found at {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        registry = cls.from_dict(data, strict=strict)
        logger.info(
            "Rule table registry loaded from %s: version %s, %d genes, %d rules",
            path.name, registry.version, len(registry._tables),
            sum(len(t.rules) for t in registry._tables.values()),
        )
        return registry

    # ===== Gene Data Access =====

    def get_table(self, gene_key: str) -> Union[MultiMarkerTable, CategoricalTable]:
        """Get the rule table for a gene, raising UnknownGene if not registered."""
        table = self._tables.get(gene_key)
        if table is None:
            raise UnknownGene(gene_key, self.supported_genes())
        return table

    def get_markers(self, gene_key: str) -> Tuple[Marker, ...]:
        """Get the gene's markers in declaration order."""
        return self.get_table(gene_key).markers

    def get_rules(self, gene_key: str) -> Tuple[GenotypeRule, ...]:
        """Get the gene's rules in declaration order."""
        return self.get_table(gene_key).rules

    def get_rule(self, gene_key: str, rule_id: str) -> Optional[GenotypeRule]:
        for rule in self.get_rules(gene_key):
            if rule.rule_id == rule_id:
                return rule
        return None

    def supported_genes(self) -> List[str]:
        """Get list of all supported gene keys, in resource order."""
        return list(self._tables.keys())

    def is_gene_supported(self, gene_key: str) -> bool:
        return gene_key in self._tables

    def tables(self) -> List[Union[MultiMarkerTable, CategoricalTable]]:
        return list(self._tables.values())


# Global registry instance
_registry_instance: Optional[RuleTableRegistry] = None


def _configured_path() -> Path:
    from .config import get_config

    configured = get_config().rule_table_path
    return Path(configured) if configured else BUNDLED_RULE_TABLES


def get_rule_registry() -> RuleTableRegistry:
    """Get the global rule table registry, loading it on first use."""
    global _registry_instance
    if _registry_instance is None:
        from .config import get_config
        _registry_instance = RuleTableRegistry.from_file(
            _configured_path(), strict=get_config().strict_validation
        )
    return _registry_instance


def reload_rule_tables(path: Optional[Union[str, Path]] = None) -> RuleTableRegistry:
    """
    Reload rule tables and swap the global registry in a single assignment.
    The new snapshot is fully built and validated before it becomes visible;
    on failure the previous registry stays in place.
    """
    global _registry_instance
    from .config import get_config

    new_registry = RuleTableRegistry.from_file(
        Path(path) if path else _configured_path(),
        strict=get_config().strict_validation,
    )
    _registry_instance = new_registry
    return new_registry


def parse_table(data: Dict) -> Union[MultiMarkerTable, CategoricalTable]:
    """Validate a single gene table dict into its tagged model."""
    return _table_adapter.validate_python(data)
