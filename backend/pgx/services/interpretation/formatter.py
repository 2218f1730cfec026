"""
Result Formatter - structural translation between engine values and the
column layout of the external Result store.

Marker columns are read from the same rule table resource as the markers, so
renaming a column is a single edit in rule_tables.json.
"""

from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Union

from .matcher import GenotypeMatcher
from .models import (
    CategoricalTable,
    GenotypeRule,
    InterpretationResult,
    MultiMarkerTable,
    ResultStatus,
    StorageRecord,
)
from .registry import RuleTableRegistry, get_rule_registry


class ResultFormatter:
    """Builds and parses storage records for one registry."""

    def __init__(
        self,
        registry: Optional[RuleTableRegistry] = None,
        matcher: Optional[GenotypeMatcher] = None,
    ):
        self.registry = registry or get_rule_registry()
        self.matcher = matcher or GenotypeMatcher(self.registry)

    def column_map(self, gene_key: str) -> Dict[str, str]:
        """Marker name -> backend column for a gene."""
        return {m.name: m.column for m in self.registry.get_markers(gene_key)}

    def to_storage_payload(
        self,
        gene_key: str,
        marker_values: Mapping[str, Optional[str]],
        result: Optional[InterpretationResult] = None,
        patient_id: Optional[int] = None,
        staff_id: Optional[int] = None,
        gene_id: Optional[int] = None,
    ) -> StorageRecord:
        """
        Flatten marker values and interpretation into gene-specific columns.
        Markers without a value are written as None; marker names the gene
        does not define are dropped.
        """
        table = self.registry.get_table(gene_key)
        payload: StorageRecord = {}

        if isinstance(table, CategoricalTable) and table.storage.locus_column:
            payload[table.storage.locus_column] = table.locus_label

        for marker in table.markers:
            payload[marker.column] = marker_values.get(marker.name) or None

        if result is not None:
            _put_result_columns(table, payload, result)

        if patient_id is not None:
            payload["Patient_Id"] = patient_id
        if staff_id is not None:
            payload["staff_id"] = staff_id
        if gene_id is not None:
            payload["geneid"] = gene_id

        return payload

    def from_storage_record(self, gene_key: str, record: Mapping[str, object]) -> Dict[str, str]:
        """Recover the marker-value mapping from a stored gene row."""
        table = self.registry.get_table(gene_key)
        marker_values: Dict[str, str] = {}
        for marker in table.markers:
            value = record.get(marker.column)
            if value is None or value == "":
                continue
            marker_values[marker.name] = str(value)
        return marker_values

    def interpretation_from_record(self, gene_key: str, record: Mapping[str, object]) -> InterpretationResult:
        """
        Read a stored gene row's genotype/phenotype/recommendation columns back.
        Tables without a genotype column (HLA_B) get the label of the rule
        the stored marker values resolve to.
        """
        storage = self.registry.get_table(gene_key).storage

        def _col(name: Optional[str]) -> Optional[str]:
            if not name:
                return None
            value = record.get(name)
            return str(value) if value not in (None, "") else None

        if storage.genotype_column:
            genotype_label = _col(storage.genotype_column)
        else:
            outcome = self.matcher.resolve(gene_key, self.from_storage_record(gene_key, record))
            genotype_label = outcome.genotype_label if isinstance(outcome, GenotypeRule) else None

        return InterpretationResult(
            gene_key=gene_key,
            genotype_label=genotype_label,
            phenotype=_col(storage.phenotype_column),
            recommendation=_col(storage.recommendation_column),
        )


def _put_result_columns(
    table: Union[MultiMarkerTable, CategoricalTable],
    payload: StorageRecord,
    result: InterpretationResult,
) -> None:
    storage = table.storage
    if storage.genotype_column:
        payload[storage.genotype_column] = result.genotype_label
    payload[storage.phenotype_column] = result.phenotype
    payload[storage.recommendation_column] = result.recommendation


def to_result_row(
    patient_id: int,
    staff_id: int,
    gene_id: int,
    gene_information: Optional[int] = None,
    status: ResultStatus = ResultStatus.PENDING,
    requested_at: Optional[datetime] = None,
) -> StorageRecord:
    """Shape of a new row in the Result table; persistence is the caller's job."""
    requested_at = requested_at or datetime.now(timezone.utc)
    return {
        "Requested_date": requested_at.isoformat(),
        "Patient_Id": patient_id,
        "status": status.value,
        "Reported_date": None,
        "gene_id": gene_id,
        "gene_information": gene_information,
        "staff_id": staff_id,
    }


def to_storage_payload(
    gene_key: str,
    marker_values: Mapping[str, Optional[str]],
    result: Optional[InterpretationResult] = None,
    **ids,
) -> StorageRecord:
    """Module-level shortcut bound to the global registry."""
    return ResultFormatter().to_storage_payload(gene_key, marker_values, result, **ids)


def from_storage_record(gene_key: str, record: Mapping[str, object]) -> Dict[str, str]:
    """Module-level shortcut bound to the global registry."""
    return ResultFormatter().from_storage_record(gene_key, record)
