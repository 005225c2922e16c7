"""
Pytest configuration and shared fixtures for schemerge tests.

The fixtures model a small blog schema as the canvas would persist it
(columns carry ids) and a proposed revision as the generation step would
produce it (no ids).
"""

import copy
import logging
from typing import Any, Dict

import pytest

from schemerge.schema.identity import CounterIdGenerator
from schemerge.schema.models import Schema


# ============================================================================
# Schema Document Fixtures
# ============================================================================

@pytest.fixture
def current_schema_data() -> Dict[str, Any]:
    """Persisted blog schema with column ids and user edits."""
    return {
        "tables": [
            {
                "name": "users",
                "description": "Registered users",
                "position": {"x": 10, "y": 20},
                "columns": [
                    {
                        "id": "col-1",
                        "name": "id",
                        "type": "INT",
                        "isPrimaryKey": True,
                        "isNullable": False,
                    },
                    {
                        "id": "col-2",
                        "name": "email",
                        "type": "VARCHAR(255)",
                        "isPrimaryKey": False,
                        "isNullable": False,
                        "note": "unique per tenant",
                    },
                ],
            },
            {
                "name": "posts",
                "columns": [
                    {
                        "id": "col-3",
                        "name": "id",
                        "type": "INT",
                        "isPrimaryKey": True,
                        "isNullable": False,
                    },
                    {
                        "id": "col-4",
                        "name": "author_id",
                        "type": "INT",
                        "isPrimaryKey": False,
                        "isNullable": False,
                        "isForeignKey": True,
                        "references": {"table": "users", "column": "id"},
                    },
                    {
                        "id": "col-5",
                        "name": "title",
                        "type": "VARCHAR(200)",
                        "isPrimaryKey": False,
                        "isNullable": False,
                    },
                ],
            },
            {
                "name": "legacy_audit",
                "columns": [
                    {
                        "id": "col-6",
                        "name": "id",
                        "type": "INT",
                        "isPrimaryKey": True,
                        "isNullable": False,
                    },
                ],
            },
        ],
        "relationships": [
            {
                "sourceTable": "posts",
                "sourceColumn": "author_id",
                "targetTable": "users",
                "targetColumn": "id",
                "type": "1:N",
                "onDelete": "CASCADE",
                "name": "fk_posts_author",
            },
            {
                "sourceTable": "legacy_audit",
                "sourceColumn": "id",
                "targetTable": "users",
                "targetColumn": "id",
                "type": "1:1",
            },
        ],
    }


@pytest.fixture
def proposed_schema_data() -> Dict[str, Any]:
    """Generated revision: edits users, extends posts, adds comments, drops legacy_audit."""
    return {
        "tables": [
            {
                "name": "users",
                "description": "Application users",
                "columns": [
                    {"name": "id", "type": "INT", "isPrimaryKey": True, "isNullable": False},
                    {"name": "email", "type": "TEXT", "isPrimaryKey": False, "isNullable": False},
                    {
                        "name": "display_name",
                        "type": "VARCHAR(100)",
                        "isPrimaryKey": False,
                        "isNullable": True,
                    },
                ],
            },
            {
                "name": "posts",
                "columns": [
                    {"name": "id", "type": "INT", "isPrimaryKey": True, "isNullable": False},
                    {"name": "author_id", "type": "INT", "isPrimaryKey": False, "isNullable": False},
                    {"name": "title", "type": "VARCHAR(200)", "isPrimaryKey": False, "isNullable": False},
                    {
                        "name": "published_at",
                        "type": "TIMESTAMP",
                        "isPrimaryKey": False,
                        "isNullable": True,
                    },
                ],
            },
            {
                "name": "comments",
                "description": "Comments on posts",
                "columns": [
                    {"name": "id", "type": "INT", "isPrimaryKey": True, "isNullable": False},
                    {"name": "post_id", "type": "INT", "isPrimaryKey": False, "isNullable": False},
                    {"name": "body", "type": "TEXT", "isPrimaryKey": False, "isNullable": False},
                ],
            },
        ],
        "relationships": [
            {
                "sourceTable": "posts",
                "sourceColumn": "author_id",
                "targetTable": "users",
                "targetColumn": "id",
                "type": "1:N",
                "onDelete": "SET NULL",
                "name": "posts_author_fk",
            },
            {
                "sourceTable": "comments",
                "sourceColumn": "post_id",
                "targetTable": "posts",
                "targetColumn": "id",
                "type": "1:N",
                "onDelete": "CASCADE",
            },
        ],
    }


@pytest.fixture
def current_schema(current_schema_data) -> Schema:
    return Schema.from_dict(current_schema_data)


@pytest.fixture
def proposed_schema(proposed_schema_data) -> Schema:
    return Schema.from_dict(proposed_schema_data)


@pytest.fixture
def counter_ids() -> CounterIdGenerator:
    """Deterministic id generator that cannot collide with fixture ids."""
    return CounterIdGenerator(prefix="new-")


def strip_column_ids(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a schema document without column ids, as a generator would emit it."""
    stripped = copy.deepcopy(data)
    for table in stripped.get("tables") or []:
        for column in table.get("columns", []):
            column.pop("id", None)
    return stripped


@pytest.fixture
def strip_ids():
    return strip_column_ids


@pytest.fixture
def reset_schemerge_logger():
    """Drop handlers installed by setup_logging during a test."""
    yield
    logger = logging.getLogger("schemerge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
