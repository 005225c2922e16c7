"""
Tests for schemerge.schema.integrity module.
"""

import pytest

from schemerge.exceptions import IntegrityError
from schemerge.schema.integrity import (
    IntegrityIssue,
    IssueSeverity,
    IssueType,
    SchemaIntegrityChecker,
    find_unresolved_relationships,
)
from schemerge.schema.models import Schema


def _schema(tables, relationships=None):
    return Schema.from_dict({"tables": tables, "relationships": relationships or []})


def _rel(source_table, source_column, target_table, target_column):
    return {
        "sourceTable": source_table,
        "sourceColumn": source_column,
        "targetTable": target_table,
        "targetColumn": target_column,
    }


class TestIssueSeverity:
    """Test IssueSeverity ordering."""

    def test_ordering(self):
        """Test severity comparison."""
        assert IssueSeverity.INFO < IssueSeverity.WARNING
        assert IssueSeverity.WARNING < IssueSeverity.ERROR
        assert not IssueSeverity.ERROR < IssueSeverity.INFO

    def test_issue_severity_lookup(self):
        """Test severities attached to issue types."""
        assert IntegrityIssue(IssueType.DUPLICATE_TABLE, "m").is_error is True
        assert IntegrityIssue(IssueType.UNKNOWN_TARGET_TABLE, "m").severity == IssueSeverity.WARNING


class TestFindUnresolvedRelationships:
    """Test find_unresolved_relationships."""

    def test_all_resolved(self, current_schema):
        """Test the fixture schema has no dangling relationships."""
        assert find_unresolved_relationships(current_schema.tables, current_schema.relationships) == []

    def test_reports_each_missing_endpoint(self):
        """Test reasons for missing tables and columns."""
        schema = _schema(
            [{"name": "users", "columns": [{"name": "id"}]}],
            [
                _rel("users", "nope", "users", "id"),
                _rel("ghosts", "id", "users", "missing"),
            ],
        )

        unresolved = find_unresolved_relationships(schema.tables, schema.relationships)

        assert [u.reasons for u in unresolved] == [
            [IssueType.UNKNOWN_SOURCE_COLUMN],
            [IssueType.UNKNOWN_SOURCE_TABLE, IssueType.UNKNOWN_TARGET_COLUMN],
        ]
        assert unresolved[1].describe() == (
            "ghosts.id->users.missing (unknown_source_table, unknown_target_column)"
        )


class TestSchemaIntegrityChecker:
    """Test SchemaIntegrityChecker."""

    def test_clean_schema(self, current_schema):
        """Test that a consistent schema yields no issues."""
        assert SchemaIntegrityChecker().check(current_schema) == []

    def test_duplicate_table(self):
        """Test duplicate table names are errors."""
        schema = _schema([{"name": "users"}, {"name": "users"}])
        issues = SchemaIntegrityChecker().check(schema)

        assert [i.issue_type for i in issues] == [IssueType.DUPLICATE_TABLE]
        assert issues[0].is_error

    def test_duplicate_column(self):
        """Test duplicate column names within a table are errors."""
        schema = _schema([{"name": "users", "columns": [{"name": "id"}, {"name": "id"}]}])
        issues = SchemaIntegrityChecker().check(schema)

        assert [i.issue_type for i in issues] == [IssueType.DUPLICATE_COLUMN]
        assert issues[0].target == "id"

    def test_duplicate_column_id(self):
        """Test ids shared across tables are errors."""
        schema = _schema(
            [
                {"name": "a", "columns": [{"id": "col-1", "name": "id"}]},
                {"name": "b", "columns": [{"id": "col-1", "name": "id"}]},
            ]
        )
        issues = SchemaIntegrityChecker().check(schema)

        assert [i.issue_type for i in issues] == [IssueType.DUPLICATE_COLUMN_ID]
        assert "a.id, b.id" in issues[0].message

    def test_missing_ids_only_when_required(self):
        """Test missing column ids are reported on request."""
        schema = _schema([{"name": "a", "columns": [{"name": "id"}]}])

        assert SchemaIntegrityChecker().check(schema) == []
        issues = SchemaIntegrityChecker(require_column_ids=True).check(schema)
        assert [i.issue_type for i in issues] == [IssueType.MISSING_COLUMN_ID]
        assert issues[0].severity == IssueSeverity.INFO

    def test_dangling_and_duplicate_relationships(self):
        """Test relationship issues are warnings."""
        schema = _schema(
            [{"name": "a", "columns": [{"name": "id"}]}],
            [_rel("a", "id", "b", "id"), _rel("a", "id", "b", "id")],
        )
        issues = SchemaIntegrityChecker().check(schema)

        types = [i.issue_type for i in issues]
        assert types.count(IssueType.UNKNOWN_TARGET_TABLE) == 2
        assert types.count(IssueType.DUPLICATE_RELATIONSHIP) == 1
        assert not any(i.is_error for i in issues)

    def test_unrecognized_relationship_payload(self):
        """Test unknown cardinalities and actions are reported as info only."""
        schema = _schema(
            [{"name": "a", "columns": [{"name": "id"}]}],
            [
                dict(_rel("a", "id", "a", "id"), type="N:1", onDelete="ARCHIVE"),
                dict(_rel("a", "id", "a", "id"), type="one-to-many", onUpdate="set null"),
            ],
        )
        issues = [
            i for i in SchemaIntegrityChecker().check(schema)
            if i.issue_type != IssueType.DUPLICATE_RELATIONSHIP
        ]

        assert [i.issue_type for i in issues] == [
            IssueType.UNKNOWN_CARDINALITY,
            IssueType.UNKNOWN_REFERENTIAL_ACTION,
        ]
        assert issues[1].message == "Relationship a.id->a.id has unrecognized onDelete 'ARCHIVE'"
        assert all(i.severity == IssueSeverity.INFO for i in issues)

    def test_assert_valid(self):
        """Test assert_valid raises only for error-severity issues."""
        checker = SchemaIntegrityChecker()
        checker.assert_valid(_schema([{"name": "a"}], [_rel("a", "x", "b", "y")]))

        with pytest.raises(IntegrityError) as exc_info:
            checker.assert_valid(_schema([{"name": "a"}, {"name": "a"}]))

        assert len(exc_info.value.issues) == 1
        assert "1 integrity error" in str(exc_info.value)
