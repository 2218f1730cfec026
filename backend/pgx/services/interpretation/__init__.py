"""
Interpretation Service

Rule-based genotype-to-phenotype interpretation for the PGx workflow.
Maps discrete marker calls to a genotype label, a clinical phenotype and a
drug-therapy recommendation per gene.
"""

from .models import (
    Marker,
    MarkerOption,
    LocalizedText,
    GenotypeRule,
    MultiMarkerTable,
    CategoricalTable,
    RuleTableSet,
    InterpretationRequest,
    InterpretationResult,
    Unresolved,
    UnresolvedReason,
    AmbiguousMatch,
    Locale,
    ResultStatus,
)
from .exceptions import InterpretationError, UnknownGene, RuleTableError
from .registry import RuleTableRegistry, get_rule_registry, reload_rule_tables
from .matcher import GenotypeMatcher, resolve
from .resolver import describe
from .formatter import ResultFormatter, to_storage_payload, from_storage_record, to_result_row
from .engine import InterpretationEngine, get_engine
from .config import (
    get_config,
    update_config,
    load_config_from_file,
    load_config_from_env,
    save_config_to_file,
)

__all__ = [
    # Models
    'Marker',
    'MarkerOption',
    'LocalizedText',
    'GenotypeRule',
    'MultiMarkerTable',
    'CategoricalTable',
    'RuleTableSet',
    'InterpretationRequest',
    'InterpretationResult',
    'Unresolved',
    'UnresolvedReason',
    'AmbiguousMatch',
    'Locale',
    'ResultStatus',

    # Errors
    'InterpretationError',
    'UnknownGene',
    'RuleTableError',

    # Registry
    'RuleTableRegistry',
    'get_rule_registry',
    'reload_rule_tables',

    # Matching / describing
    'GenotypeMatcher',
    'resolve',
    'describe',

    # Storage
    'ResultFormatter',
    'to_storage_payload',
    'from_storage_record',
    'to_result_row',

    # Engine
    'InterpretationEngine',
    'get_engine',

    # Config
    'get_config',
    'update_config',
    'load_config_from_file',
    'load_config_from_env',
    'save_config_to_file',
]
