"""
Data models for the interpretation engine.
These models represent the static rule tables (markers, genotype rules) and the
ephemeral request/result structures passed between the engine and its callers.
"""

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer
from types import MappingProxyType
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Union
from enum import Enum


class Locale(str, Enum):
    """Display languages supported by the resolver."""
    EN = "en"
    TH = "th"


class UnresolvedReason(str, Enum):
    """Why a marker-value mapping did not resolve to a rule."""
    INCOMPLETE = "incomplete"  # At least one marker has no value yet
    UNKNOWN_MARKER = "unknown_marker"  # Marker name not defined for the gene
    INVALID_VALUE = "invalid_value"  # Value outside the marker's options
    NO_MATCHING_RULE = "no_matching_rule"  # Valid combination, no rule for it


class ResultStatus(str, Enum):
    """Workflow status of a persisted Result row."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REVIEWED = "reviewed"
    REJECTED = "rejected"


def _read_only(value: Dict[str, str]) -> Mapping[str, str]:
    return MappingProxyType(value)


# Validated as a dict, held as a read-only view, dumped back as a plain dict
FrozenStrMap = Annotated[Dict[str, str], AfterValidator(_read_only), PlainSerializer(dict)]


class MarkerOption(BaseModel):
    """One selectable call for a marker."""
    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="Stored call value (e.g., G/A)")
    label: Optional[str] = Field(None, description="Display label, defaults to the value")

    def display(self) -> str:
        return self.label or self.value


class Marker(BaseModel):
    """A genetic test probe with an enumerated set of observed calls."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Marker name, unique within a gene (e.g., CYP2C19*2 (681G>A))")
    description: str = Field("", description="Human readable description")
    column: str = Field(..., description="Backend storage column (e.g., CYPx2_681G)")
    options: Tuple[MarkerOption, ...] = Field(..., min_length=1, description="Allowed calls in display order")

    @property
    def allowed_values(self) -> Tuple[str, ...]:
        return tuple(o.value for o in self.options)


class LocalizedText(BaseModel):
    """Locale-independent key with a default string and optional translations."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Locale-independent identifier (e.g., poor_metabolizer)")
    default: str = Field(..., description="Locale-neutral fallback text")
    translations: FrozenStrMap = Field(
        default_factory=dict, validate_default=True, description="Text keyed by locale code"
    )

    def text(self, locale: Union[Locale, str, None] = None) -> str:
        """Return the text for a locale, falling back to the default."""
        if locale is None:
            return self.default
        code = locale.value if isinstance(locale, Locale) else str(locale)
        return self.translations.get(code) or self.default


class GenotypeRule(BaseModel):
    """Maps one marker-value combination to genotype, phenotype and recommendation."""
    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Identifier, unique within the gene's table")
    marker_values: FrozenStrMap = Field(..., description="Expected value per marker name")
    genotype_label: str = Field(..., description="Canonical genotype (e.g., *1/*2)")
    phenotype: LocalizedText = Field(..., description="Clinical phenotype")
    recommendation: LocalizedText = Field(..., description="Therapy recommendation")
    activity_score: Optional[float] = Field(None, ge=0.0, description="Activity score where the gene uses one")


class StorageColumns(BaseModel):
    """Backend table and result column names for one gene."""
    model_config = ConfigDict(frozen=True)

    table: str = Field(..., description="Backend gene table (e.g., CYP2C19, HLA_B)")
    genotype_column: Optional[str] = Field(None, description="Column holding the genotype label")
    phenotype_column: str = Field(..., description="Column holding the phenotype text")
    recommendation_column: str = Field(..., description="Column holding the recommendation text")
    locus_column: Optional[str] = Field(None, description="Column holding the HLA locus label")


class MultiMarkerTable(BaseModel):
    """Gene whose rules match on exact equality across all markers."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["multi_marker"] = "multi_marker"
    gene_key: str
    drug: Optional[str] = Field(None, description="Drug the recommendations refer to")
    markers: Tuple[Marker, ...] = Field(..., min_length=1)
    rules: Tuple[GenotypeRule, ...] = Field(default_factory=tuple)
    storage: StorageColumns

    def match_key(self, marker_values: Mapping[str, str]) -> Tuple[str, ...]:
        return tuple(marker_values[m.name] for m in self.markers)


class CategoricalTable(BaseModel):
    """Gene matched on a single (locus label, status) pair, e.g. HLA-B*15:02."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["categorical"] = "categorical"
    gene_key: str
    drug: Optional[str] = Field(None, description="Drug the recommendations refer to")
    locus_label: str = Field(..., description="HLA allele tested (e.g., HLA-B*15:02)")
    markers: Tuple[Marker, ...] = Field(..., min_length=1, max_length=1)
    rules: Tuple[GenotypeRule, ...] = Field(default_factory=tuple)
    storage: StorageColumns

    @property
    def status_marker(self) -> Marker:
        return self.markers[0]

    def match_key(self, marker_values: Mapping[str, str]) -> Tuple[str, ...]:
        return (self.locus_label, marker_values[self.status_marker.name])


RuleTable = Annotated[Union[MultiMarkerTable, CategoricalTable], Field(discriminator="kind")]


class RuleTableSet(BaseModel):
    """Versioned collection of rule tables, the shape of rule_tables.json."""
    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Rule table resource version")
    source: Optional[str] = Field(None, description="Provenance of the rule data")
    genes: Tuple[RuleTable, ...] = Field(default_factory=tuple)


class Unresolved(BaseModel):
    """Valid 'no interpretation yet' terminal state of the matcher."""
    model_config = ConfigDict(frozen=True)

    gene_key: str
    reason: UnresolvedReason

    @property
    def is_resolved(self) -> bool:
        return False


class AmbiguousMatch(BaseModel):
    """Diagnostic record for a combination matched by more than one rule."""
    gene_key: str
    match_key: List[str]
    rule_ids: List[str]
    selected_rule_id: str


class InterpretationRequest(BaseModel):
    """Raw form input: a gene and the marker calls selected so far."""
    gene_key: str = Field(..., description="Gene key (e.g., CYP2C19, HLA-B*15:02)")
    marker_values: Dict[str, Optional[str]] = Field(
        default_factory=dict, description="Marker name -> observed call; None or empty while unselected"
    )


class InterpretationResult(BaseModel):
    """Normalized interpretation; text fields are None while unresolved."""
    gene_key: Optional[str] = None
    genotype_label: Optional[str] = None
    phenotype: Optional[str] = None
    recommendation: Optional[str] = None
    phenotype_key: Optional[str] = None
    recommendation_key: Optional[str] = None
    activity_score: Optional[float] = None
    locale: Locale = Locale.EN
    unresolved_reason: Optional[UnresolvedReason] = None

    @property
    def is_resolved(self) -> bool:
        return self.genotype_label is not None


StorageRecord = Dict[str, Any]
