from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from pgx.services.interpretation.engine import get_engine
from pgx.services.interpretation.exceptions import UnknownGene
from pgx.services.interpretation.models import (
    InterpretationRequest,
    InterpretationResult,
    Locale,
)

router = APIRouter()


class MarkerOptionOut(BaseModel):
    value: str
    label: str


class MarkerOut(BaseModel):
    name: str
    description: str
    column: str
    options: List[MarkerOptionOut]


class GeneOut(BaseModel):
    gene_key: str
    kind: str
    drug: Optional[str] = None
    markers: List[MarkerOut]


class StoragePayloadRequest(BaseModel):
    request: InterpretationRequest
    patient_id: Optional[int] = Field(None, description="Patient_Id of the case")
    staff_id: Optional[int] = Field(None, description="Staff_Id of the acting staff member")
    gene_id: Optional[int] = Field(None, description="gene_id from the Gene table")
    locale: Optional[Locale] = None


def _gene_out(table) -> GeneOut:
    return GeneOut(
        gene_key=table.gene_key,
        kind=table.kind,
        drug=table.drug,
        markers=[
            MarkerOut(
                name=m.name,
                description=m.description,
                column=m.column,
                options=[MarkerOptionOut(value=o.value, label=o.display()) for o in m.options],
            )
            for m in table.markers
        ],
    )


def _not_found(e: UnknownGene) -> HTTPException:
    return HTTPException(status_code=404, detail=e.to_dict())


@router.get("/genes", response_model=List[GeneOut])
async def list_genes():
    """
    Marker and option definitions for every supported gene.
    The gene entry form is built from this instead of a client-side copy.
    """
    return [_gene_out(t) for t in get_engine().registry.tables()]


@router.get("/genes/{gene_key}/markers", response_model=List[MarkerOut])
async def get_gene_markers(gene_key: str):
    try:
        table = get_engine().registry.get_table(gene_key)
    except UnknownGene as e:
        raise _not_found(e)
    return _gene_out(table).markers


@router.post("/interpret", response_model=InterpretationResult)
async def interpret(
    request: InterpretationRequest,
    locale: Optional[Locale] = Query(None, description="Display language (en or th)"),
):
    """
    Interpret the marker calls selected so far.
    An incomplete selection returns null genotype/phenotype/recommendation and
    an unresolved_reason; it is not an error.
    """
    try:
        return get_engine().interpret(request, locale=locale)
    except UnknownGene as e:
        raise _not_found(e)


@router.post("/storage-payload", response_model=Dict[str, Any])
async def storage_payload(body: StoragePayloadRequest):
    """Interpret and flatten into the gene table's backend columns."""
    try:
        return get_engine().storage_payload(
            body.request,
            locale=body.locale,
            patient_id=body.patient_id,
            staff_id=body.staff_id,
            gene_id=body.gene_id,
        )
    except UnknownGene as e:
        raise _not_found(e)


@router.post("/genes/{gene_key}/marker-values", response_model=Dict[str, str])
async def marker_values_from_record(gene_key: str, record: Dict[str, Any]):
    """Recover marker values from a saved gene row, for redisplay."""
    try:
        return get_engine().formatter.from_storage_record(gene_key, record)
    except UnknownGene as e:
        raise _not_found(e)
