"""
Interpretation Engine - one-call interface over matcher, resolver and formatter.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional, Union

from .config import get_config
from .formatter import ResultFormatter
from .matcher import GenotypeMatcher
from .models import InterpretationRequest, InterpretationResult, Locale, StorageRecord
from .registry import RuleTableRegistry, get_rule_registry
from .resolver import describe

logger = logging.getLogger(__name__)


class InterpretationEngine:
    """High-level interface for genotype interpretation."""

    def __init__(self, registry: Optional[RuleTableRegistry] = None):
        self.registry = registry or get_rule_registry()
        self.matcher = GenotypeMatcher(self.registry)
        self.formatter = ResultFormatter(self.registry, self.matcher)

    def interpret(
        self,
        request: Union[InterpretationRequest, str],
        marker_values: Optional[Mapping[str, Optional[str]]] = None,
        locale: Union[Locale, str, None] = None,
    ) -> InterpretationResult:
        """
        Interpret one gene.
        Accepts an InterpretationRequest or a gene key plus marker values.
        """
        if isinstance(request, InterpretationRequest):
            gene_key, values = request.gene_key, request.marker_values
        else:
            gene_key, values = request, dict(marker_values or {})

        outcome = self.matcher.resolve(gene_key, values)
        result = describe(outcome, locale, gene_key=gene_key)

        if get_config().verbose_logging:
            logger.debug(
                "Interpreted %s: genotype=%s unresolved=%s",
                gene_key, result.genotype_label, result.unresolved_reason,
            )
        return result

    def interpret_many(
        self,
        requests: Iterable[InterpretationRequest],
        locale: Union[Locale, str, None] = None,
    ) -> Dict[str, InterpretationResult]:
        """Interpret several genes and return results keyed by gene."""
        results = {}
        for request in requests:
            results[request.gene_key] = self.interpret(request, locale=locale)
        return results

    def storage_payload(
        self,
        request: InterpretationRequest,
        locale: Union[Locale, str, None] = None,
        patient_id: Optional[int] = None,
        staff_id: Optional[int] = None,
        gene_id: Optional[int] = None,
    ) -> StorageRecord:
        """Interpret and flatten into the gene table's storage columns."""
        result = self.interpret(request, locale=locale)
        return self.formatter.to_storage_payload(
            request.gene_key,
            request.marker_values,
            result,
            patient_id=patient_id,
            staff_id=staff_id,
            gene_id=gene_id,
        )


_engine_instance: Optional[InterpretationEngine] = None


def get_engine() -> InterpretationEngine:
    """Get an engine bound to the current global registry."""
    global _engine_instance
    registry = get_rule_registry()
    engine = _engine_instance
    if engine is None or engine.registry is not registry:
        engine = InterpretationEngine(registry)
        _engine_instance = engine
    return engine
