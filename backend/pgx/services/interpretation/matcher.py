"""
Genotype Matcher - finds the rule for a marker-value mapping.

Multi-marker genes match on exact equality across every marker; categorical
genes (HLA-B*15:02) match on the (locus label, status) pair. Incomplete or
out-of-domain input is an ordinary Unresolved value so the UI can call this on
every selection change.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .models import (
    AmbiguousMatch,
    CategoricalTable,
    GenotypeRule,
    MultiMarkerTable,
    Unresolved,
    UnresolvedReason,
)
from .registry import RuleTableRegistry, get_rule_registry

logger = logging.getLogger(__name__)


class GenotypeMatcher:
    """Resolves marker values against the rule tables of a registry."""

    def __init__(self, registry: Optional[RuleTableRegistry] = None):
        self.registry = registry or get_rule_registry()
        # Match-key index per gene, built once; tables never change under a registry
        self._index: Dict[str, Dict[Tuple[str, ...], List[GenotypeRule]]] = {}
        for table in self.registry.tables():
            index: Dict[Tuple[str, ...], List[GenotypeRule]] = {}
            for rule in table.rules:
                try:
                    key = table.match_key(rule.marker_values)
                except KeyError:
                    # Malformed rule kept by a non-strict load; it can never match
                    continue
                index.setdefault(key, []).append(rule)
            self._index[table.gene_key] = index

    def resolve(self, gene_key: str, marker_values: Mapping[str, Optional[str]]) -> Union[GenotypeRule, Unresolved]:
        """
        Main entry point for matching.
        Raises UnknownGene for an unregistered gene; every other problem with
        the input comes back as Unresolved.
        """
        table = self.registry.get_table(gene_key)
        values = dict(marker_values or {})

        reason = self._check_input(table, values)
        if reason is not None:
            return Unresolved(gene_key=gene_key, reason=reason)

        key = table.match_key(values)
        candidates = self._index[gene_key].get(key, [])

        if not candidates:
            return Unresolved(gene_key=gene_key, reason=UnresolvedReason.NO_MATCHING_RULE)

        if len(candidates) > 1:
            # Data-integrity condition: first-declared rule wins
            diagnostic = AmbiguousMatch(
                gene_key=gene_key,
                match_key=list(key),
                rule_ids=[r.rule_id for r in candidates],
                selected_rule_id=candidates[0].rule_id,
            )
            logger.warning("Ambiguous rule match: %s", diagnostic.model_dump_json())

        return candidates[0]

    def is_complete(self, gene_key: str, marker_values: Mapping[str, Optional[str]]) -> bool:
        """Whether every marker of the gene has a value (the form is filled in)."""
        table = self.registry.get_table(gene_key)
        return all(marker_values.get(m.name) for m in table.markers)

    @staticmethod
    def _check_input(
        table: Union[MultiMarkerTable, CategoricalTable], values: Dict[str, Optional[str]]
    ) -> Optional[UnresolvedReason]:
        markers = {m.name: m for m in table.markers}

        if any(name not in markers for name in values):
            return UnresolvedReason.UNKNOWN_MARKER

        if any(not values.get(name) for name in markers):
            return UnresolvedReason.INCOMPLETE

        for name, marker in markers.items():
            if values[name] not in marker.allowed_values:
                return UnresolvedReason.INVALID_VALUE

        return None


_default_matcher: Optional[GenotypeMatcher] = None


def resolve(gene_key: str, marker_values: Mapping[str, Optional[str]]) -> Union[GenotypeRule, Unresolved]:
    """Resolve against the current global registry."""
    global _default_matcher
    registry = get_rule_registry()
    matcher = _default_matcher
    if matcher is None or matcher.registry is not registry:
        matcher = GenotypeMatcher(registry)
        _default_matcher = matcher
    return matcher.resolve(gene_key, marker_values)
