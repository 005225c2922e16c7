"""
Schema reconciliation package for schemerge.

This package provides:
- The structural schema model (tables, columns, relationships)
- Identity generation and key derivation helpers
- Non-destructive schema reconciliation
- Change records and integrity checks
"""

from .models import (
    Cardinality,
    Column,
    ColumnReference,
    Index,
    ReferentialAction,
    Relationship,
    Schema,
    Table,
    parse_cardinality,
    parse_referential_action,
)
from .identity import (
    CounterIdGenerator,
    TimestampIdGenerator,
    UniqueIdGenerator,
    UuidIdGenerator,
    make_id_generator,
    relationship_key,
)
from .changes import ChangeType, SchemaChange, summarize_changes
from .integrity import (
    IntegrityIssue,
    IssueSeverity,
    IssueType,
    SchemaIntegrityChecker,
    UnresolvedRelationship,
    find_unresolved_relationships,
)
from .reconciler import (
    ReconciliationResult,
    ReconciliationStatus,
    SchemaReconciler,
    compute_final_schema_state,
    sync_foreign_key_flags,
)

__all__ = [
    "Cardinality",
    "Column",
    "ColumnReference",
    "Index",
    "ReferentialAction",
    "Relationship",
    "Schema",
    "Table",
    "parse_cardinality",
    "parse_referential_action",
    "CounterIdGenerator",
    "TimestampIdGenerator",
    "UniqueIdGenerator",
    "UuidIdGenerator",
    "make_id_generator",
    "relationship_key",
    "ChangeType",
    "SchemaChange",
    "summarize_changes",
    "IntegrityIssue",
    "IssueSeverity",
    "IssueType",
    "SchemaIntegrityChecker",
    "UnresolvedRelationship",
    "find_unresolved_relationships",
    "ReconciliationResult",
    "ReconciliationStatus",
    "SchemaReconciler",
    "compute_final_schema_state",
    "sync_foreign_key_flags",
]
