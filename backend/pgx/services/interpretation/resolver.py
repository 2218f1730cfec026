"""
Phenotype/Recommendation Resolver - turns a matched rule into display text
for the requested locale.
"""

from typing import Optional, Union

from .models import GenotypeRule, InterpretationResult, Locale, Unresolved


def _coerce_locale(locale: Union[Locale, str, None]) -> Locale:
    if isinstance(locale, Locale):
        return locale
    if locale is None:
        from .config import get_config
        return get_config().default_locale
    try:
        return Locale(str(locale).lower())
    except ValueError:
        # Outside the supported set: degrade to locale-neutral defaults
        return Locale.EN


def describe(
    rule: Union[GenotypeRule, Unresolved],
    locale: Union[Locale, str, None] = None,
    gene_key: Optional[str] = None,
) -> InterpretationResult:
    """
    Build the InterpretationResult for a rule.

    Total over its input: an Unresolved value yields a result with null text
    fields and the unresolved reason; a missing translation falls back to the
    rule's default text.
    """
    resolved_locale = _coerce_locale(locale)

    if isinstance(rule, Unresolved):
        return InterpretationResult(
            gene_key=rule.gene_key,
            locale=resolved_locale,
            unresolved_reason=rule.reason,
        )

    return InterpretationResult(
        gene_key=gene_key,
        genotype_label=rule.genotype_label,
        phenotype=rule.phenotype.text(resolved_locale),
        recommendation=rule.recommendation.text(resolved_locale),
        phenotype_key=rule.phenotype.key,
        recommendation_key=rule.recommendation.key,
        activity_score=rule.activity_score,
        locale=resolved_locale,
    )
