"""
Change records for schemerge.

Describes, as data, each decision a reconciliation pass made: which tables
and columns were added, merged or dropped, and which relationships were
preserved, added or removed.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class ChangeType(str, Enum):
    """Types of schema changes."""

    ADD_TABLE = "add_table"
    MERGE_TABLE = "merge_table"
    DROP_TABLE = "drop_table"
    ADD_COLUMN = "add_column"
    UPDATE_COLUMN = "update_column"
    DROP_COLUMN = "drop_column"
    PRESERVE_RELATIONSHIP = "preserve_relationship"
    ADD_RELATIONSHIP = "add_relationship"
    DROP_RELATIONSHIP = "drop_relationship"


DESTRUCTIVE_CHANGES = frozenset(
    {ChangeType.DROP_TABLE, ChangeType.DROP_COLUMN, ChangeType.DROP_RELATIONSHIP}
)


@dataclass
class SchemaChange:
    """One reconciliation decision."""

    change_type: ChangeType
    table: Optional[str]
    description: str
    target: Optional[str] = None  # column name or relationship key
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None

    @property
    def is_destructive(self) -> bool:
        """Check if this change removes something from the schema."""
        return self.change_type in DESTRUCTIVE_CHANGES

    @property
    def change_id(self) -> str:
        """Get identifier for this change."""
        parts = [self.change_type.value]
        if self.table:
            parts.append(self.table)
        if self.target:
            parts.append(self.target)
        return ":".join(parts)


def summarize_changes(changes: Iterable[SchemaChange]) -> Dict[str, int]:
    """Count changes by type, in ``ChangeType`` declaration order."""
    counts = Counter(change.change_type for change in changes)
    return {ct.value: counts[ct] for ct in ChangeType if counts[ct]}
