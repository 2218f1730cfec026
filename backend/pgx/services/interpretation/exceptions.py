"""
Exception hierarchy for the interpretation engine.

Only configuration-level problems are raised. An incomplete or unmatched
marker selection is an ordinary Unresolved value, never an exception.
"""
from typing import Any, Dict, List, Optional


class InterpretationError(Exception):
    """Base exception for all interpretation engine errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERPRETATION_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class UnknownGene(InterpretationError):
    """Gene key is not registered in the rule table registry."""

    def __init__(self, gene_key: str, supported: Optional[List[str]] = None):
        super().__init__(
            message=f"Gene {gene_key} not supported",
            code="UNKNOWN_GENE",
            details={"gene_key": gene_key, "supported_genes": supported or []}
        )
        self.gene_key = gene_key


class RuleTableError(InterpretationError):
    """A rule table failed validation while being loaded."""

    def __init__(self, gene_key: str, problems: List[str]):
        super().__init__(
            message=f"Rule table for {gene_key} is invalid: {'; '.join(problems)}",
            code="RULE_TABLE_INVALID",
            details={"gene_key": gene_key, "problems": list(problems)}
        )
        self.gene_key = gene_key
        self.problems = list(problems)
