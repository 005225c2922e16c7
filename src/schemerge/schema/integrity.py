"""
Integrity checks for schemerge schemas.

The reconciler trusts its inputs and never validates referential integrity
while merging. These checks run afterwards to flag relationships whose
endpoints no longer exist and names that collide within one schema.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..exceptions import IntegrityError
from .identity import index_by_name
from .models import Relationship, Schema, Table


logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for integrity issues."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    def __lt__(self, other):
        """Enable comparison of severity levels."""
        if self.__class__ is other.__class__:
            return self.order_value < other.order_value
        return NotImplemented

    @property
    def order_value(self) -> int:
        """Get numeric order value for comparison."""
        order = {"info": 1, "warning": 2, "error": 3}
        return order[self.value]


class IssueType(str, Enum):
    """Types of integrity issues."""

    DUPLICATE_TABLE = "duplicate_table"
    DUPLICATE_COLUMN = "duplicate_column"
    DUPLICATE_COLUMN_ID = "duplicate_column_id"
    MISSING_COLUMN_ID = "missing_column_id"
    UNKNOWN_SOURCE_TABLE = "unknown_source_table"
    UNKNOWN_SOURCE_COLUMN = "unknown_source_column"
    UNKNOWN_TARGET_TABLE = "unknown_target_table"
    UNKNOWN_TARGET_COLUMN = "unknown_target_column"
    DUPLICATE_RELATIONSHIP = "duplicate_relationship"
    UNKNOWN_CARDINALITY = "unknown_cardinality"
    UNKNOWN_REFERENTIAL_ACTION = "unknown_referential_action"


ISSUE_SEVERITIES: Dict[IssueType, IssueSeverity] = {
    IssueType.DUPLICATE_TABLE: IssueSeverity.ERROR,
    IssueType.DUPLICATE_COLUMN: IssueSeverity.ERROR,
    IssueType.DUPLICATE_COLUMN_ID: IssueSeverity.ERROR,
    IssueType.MISSING_COLUMN_ID: IssueSeverity.INFO,
    IssueType.UNKNOWN_SOURCE_TABLE: IssueSeverity.WARNING,
    IssueType.UNKNOWN_SOURCE_COLUMN: IssueSeverity.WARNING,
    IssueType.UNKNOWN_TARGET_TABLE: IssueSeverity.WARNING,
    IssueType.UNKNOWN_TARGET_COLUMN: IssueSeverity.WARNING,
    IssueType.DUPLICATE_RELATIONSHIP: IssueSeverity.WARNING,
    IssueType.UNKNOWN_CARDINALITY: IssueSeverity.INFO,
    IssueType.UNKNOWN_REFERENTIAL_ACTION: IssueSeverity.INFO,
}


@dataclass
class IntegrityIssue:
    """A single integrity finding."""

    issue_type: IssueType
    message: str
    table: Optional[str] = None
    target: Optional[str] = None

    @property
    def severity(self) -> IssueSeverity:
        return ISSUE_SEVERITIES[self.issue_type]

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR


@dataclass
class UnresolvedRelationship:
    """A relationship whose endpoints are missing from the table set."""

    relationship: Relationship
    reasons: List[IssueType]
    dropped: bool = False

    @property
    def key(self) -> str:
        return self.relationship.key

    def describe(self) -> str:
        reasons = ", ".join(r.value for r in self.reasons)
        return f"{self.key} ({reasons})"


def relationship_endpoint_issues(
    relationship: Relationship,
    tables: Dict[str, Table],
) -> List[IssueType]:
    """Return the reasons a relationship cannot be resolved, if any."""
    reasons = []
    source = tables.get(relationship.source_table)
    if source is None:
        reasons.append(IssueType.UNKNOWN_SOURCE_TABLE)
    elif source.get_column(relationship.source_column) is None:
        reasons.append(IssueType.UNKNOWN_SOURCE_COLUMN)

    target = tables.get(relationship.target_table)
    if target is None:
        reasons.append(IssueType.UNKNOWN_TARGET_TABLE)
    elif target.get_column(relationship.target_column) is None:
        reasons.append(IssueType.UNKNOWN_TARGET_COLUMN)
    return reasons


def find_unresolved_relationships(
    tables: Iterable[Table],
    relationships: Iterable[Relationship],
) -> List[UnresolvedRelationship]:
    """Find relationships referencing tables or columns not in ``tables``."""
    lookup = index_by_name(tables)
    unresolved = []
    for relationship in relationships:
        reasons = relationship_endpoint_issues(relationship, lookup)
        if reasons:
            unresolved.append(UnresolvedRelationship(relationship, reasons))
    return unresolved


class SchemaIntegrityChecker:
    """Collects integrity issues for a whole schema."""

    def __init__(self, require_column_ids: bool = False):
        self.require_column_ids = require_column_ids

    def check(self, schema: Schema) -> List[IntegrityIssue]:
        """Run every check and return all issues found."""
        issues: List[IntegrityIssue] = []
        tables = schema.tables or []
        issues.extend(self._check_table_names(tables))
        for table in tables:
            issues.extend(self._check_columns(table))
        issues.extend(self._check_column_ids(tables))
        issues.extend(self._check_relationships(tables, schema.relationships))

        if issues:
            worst = max((issue.severity for issue in issues), key=lambda s: s.order_value)
            logger.debug(f"Integrity check found {len(issues)} issue(s), worst: {worst.value}")
        return issues

    def assert_valid(self, schema: Schema) -> None:
        """Raise IntegrityError if any error-severity issue is present."""
        errors = [issue for issue in self.check(schema) if issue.is_error]
        if errors:
            raise IntegrityError(errors)

    def _check_table_names(self, tables: List[Table]) -> List[IntegrityIssue]:
        counts = Counter(t.name for t in tables)
        return [
            IntegrityIssue(
                IssueType.DUPLICATE_TABLE,
                f"Table name '{name}' appears {count} times",
                table=name,
            )
            for name, count in counts.items()
            if count > 1
        ]

    def _check_columns(self, table: Table) -> List[IntegrityIssue]:
        issues = []
        counts = Counter(c.name for c in table.columns)
        for name, count in counts.items():
            if count > 1:
                issues.append(
                    IntegrityIssue(
                        IssueType.DUPLICATE_COLUMN,
                        f"Column '{name}' appears {count} times in table '{table.name}'",
                        table=table.name,
                        target=name,
                    )
                )
        if self.require_column_ids:
            for column in table.columns:
                if column.id is None:
                    issues.append(
                        IntegrityIssue(
                            IssueType.MISSING_COLUMN_ID,
                            f"Column '{table.name}.{column.name}' has no id",
                            table=table.name,
                            target=column.name,
                        )
                    )
        return issues

    def _check_column_ids(self, tables: List[Table]) -> List[IntegrityIssue]:
        owners: Dict[str, List[str]] = {}
        for table in tables:
            for column in table.columns:
                if column.id is not None:
                    owners.setdefault(column.id, []).append(f"{table.name}.{column.name}")
        return [
            IntegrityIssue(
                IssueType.DUPLICATE_COLUMN_ID,
                f"Column id '{column_id}' is shared by {', '.join(names)}",
                target=column_id,
            )
            for column_id, names in owners.items()
            if len(names) > 1
        ]

    def _check_relationships(
        self,
        tables: List[Table],
        relationships: List[Relationship],
    ) -> List[IntegrityIssue]:
        issues = []
        for unresolved in find_unresolved_relationships(tables, relationships):
            for reason in unresolved.reasons:
                issues.append(
                    IntegrityIssue(
                        reason,
                        f"Relationship {unresolved.key}: {reason.value.replace('_', ' ')}",
                        table=unresolved.relationship.source_table,
                        target=unresolved.key,
                    )
                )

        counts = Counter(r.key for r in relationships)
        for key, count in counts.items():
            if count > 1:
                issues.append(
                    IntegrityIssue(
                        IssueType.DUPLICATE_RELATIONSHIP,
                        f"Relationship {key} appears {count} times",
                        target=key,
                    )
                )

        for relationship in relationships:
            issues.extend(self._check_relationship_payload(relationship))
        return issues

    def _check_relationship_payload(self, relationship: Relationship) -> List[IntegrityIssue]:
        issues = []
        if relationship.type is not None and relationship.cardinality is None:
            issues.append(
                IntegrityIssue(
                    IssueType.UNKNOWN_CARDINALITY,
                    f"Relationship {relationship.key} has unrecognized type '{relationship.type}'",
                    table=relationship.source_table,
                    target=relationship.key,
                )
            )
        for label, raw, action in (
            ("onDelete", relationship.on_delete, relationship.delete_action),
            ("onUpdate", relationship.on_update, relationship.update_action),
        ):
            if raw is not None and action is None:
                issues.append(
                    IntegrityIssue(
                        IssueType.UNKNOWN_REFERENTIAL_ACTION,
                        f"Relationship {relationship.key} has unrecognized {label} '{raw}'",
                        table=relationship.source_table,
                        target=relationship.key,
                    )
                )
        return issues
