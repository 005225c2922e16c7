"""
schemerge: Non-destructive schema reconciliation for visual database designers.

schemerge merges a proposed schema revision into a live, already annotated
schema while keeping column ids, relationship links and manual edits intact.
"""

__version__ = "0.1.0"

from .config import SchemergeConfig
from .exceptions import (
    ConfigurationError,
    ReconciliationError,
    SchemaLoadError,
    SchemaValidationError,
    SchemergeError,
)
from .schema import Schema, SchemaReconciler, compute_final_schema_state

__all__ = [
    "__version__",
    "SchemergeConfig",
    "SchemergeError",
    "ConfigurationError",
    "ReconciliationError",
    "SchemaLoadError",
    "SchemaValidationError",
    "Schema",
    "SchemaReconciler",
    "compute_final_schema_state",
]
