"""
Schema reconciliation core logic for schemerge.

Merges a proposed schema revision into the current, already annotated
schema without losing column identity, relationship links or metadata the
canvas depends on.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from ..config import ReconcilerConfig
from ..exceptions import ReconciliationError, SchemaValidationError, SchemergeError
from .changes import ChangeType, SchemaChange, summarize_changes
from .identity import (
    IdGenerator,
    UniqueIdGenerator,
    UuidIdGenerator,
    index_by_name,
    make_id_generator,
    relationship_key,
    table_key,
)
from .integrity import UnresolvedRelationship, find_unresolved_relationships
from .models import Column, ColumnReference, Relationship, Schema, Table


logger = logging.getLogger(__name__)

SchemaInput = Union[Schema, Dict[str, Any], None]

# Column attributes taken from the proposed side on update. One the proposed
# column does not state is removed from the merged column.
# is_foreign_key and references belong to relationship reconciliation.
COLUMN_UPDATE_FIELDS = ("type", "is_primary_key", "is_nullable", "default_value", "description")


class ReconciliationStatus(str, Enum):
    """Status of reconciliation operations."""

    MERGED = "merged"
    PASSTHROUGH_CURRENT = "passthrough_current"
    PASSTHROUGH_PROPOSED = "passthrough_proposed"


@dataclass
class ReconciliationResult:
    """Result of a schema reconciliation pass."""

    status: ReconciliationStatus
    schema: Optional[Schema]
    changes: List[SchemaChange] = field(default_factory=list)
    unresolved_relationships: List[UnresolvedRelationship] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def count(self, change_type: ChangeType) -> int:
        return sum(1 for c in self.changes if c.change_type == change_type)

    @property
    def is_passthrough(self) -> bool:
        return self.status != ReconciliationStatus.MERGED

    @property
    def tables_added(self) -> int:
        return self.count(ChangeType.ADD_TABLE)

    @property
    def tables_merged(self) -> int:
        return self.count(ChangeType.MERGE_TABLE)

    @property
    def tables_dropped(self) -> int:
        return self.count(ChangeType.DROP_TABLE)

    @property
    def columns_added(self) -> int:
        return self.count(ChangeType.ADD_COLUMN)

    @property
    def columns_updated(self) -> int:
        return self.count(ChangeType.UPDATE_COLUMN)

    @property
    def columns_dropped(self) -> int:
        return self.count(ChangeType.DROP_COLUMN)

    @property
    def relationships_preserved(self) -> int:
        return self.count(ChangeType.PRESERVE_RELATIONSHIP)

    @property
    def relationships_added(self) -> int:
        return self.count(ChangeType.ADD_RELATIONSHIP)

    @property
    def relationships_dropped(self) -> int:
        return self.count(ChangeType.DROP_RELATIONSHIP)

    @property
    def destructive_changes(self) -> List[SchemaChange]:
        return [c for c in self.changes if c.is_destructive]

    def summary(self) -> Dict[str, int]:
        return summarize_changes(self.changes)


class SchemaReconciler:
    """
    Non-destructive schema reconciliation engine.

    Given the current schema and a proposed revision, produces a merged
    schema that:
    - keeps every table the proposed schema still wants, in proposed order
    - preserves column ids and extra metadata for columns that already existed
    - mints fresh ids for brand-new columns
    - keeps relationships present in both, drops those only in current,
      and appends those only in proposed

    Instances hold configuration and an id generator only; each call is
    independent and never mutates its inputs.
    """

    def __init__(
        self,
        id_generator: Optional[IdGenerator] = None,
        sync_foreign_keys: bool = False,
        drop_unresolved_relationships: bool = False,
        warn_unresolved_relationships: bool = True,
    ):
        self.id_generator = id_generator or UuidIdGenerator()
        self.sync_foreign_keys = sync_foreign_keys
        self.drop_unresolved_relationships = drop_unresolved_relationships
        self.warn_unresolved_relationships = warn_unresolved_relationships

    @classmethod
    def from_config(cls, config: ReconcilerConfig) -> "SchemaReconciler":
        """Build a reconciler from the ``reconciler`` configuration section."""
        return cls(
            id_generator=make_id_generator(config.id_strategy, config.id_prefix),
            sync_foreign_keys=config.sync_foreign_keys,
            drop_unresolved_relationships=config.drop_unresolved_relationships,
            warn_unresolved_relationships=config.warn_unresolved_relationships,
        )

    def compute_final_schema_state(
        self,
        current: SchemaInput,
        proposed: SchemaInput,
    ) -> Optional[Schema]:
        """Merge ``proposed`` into ``current`` and return the final schema."""
        return self.reconcile(current, proposed).schema

    def reconcile(
        self,
        current: SchemaInput,
        proposed: SchemaInput,
    ) -> ReconciliationResult:
        """
        Reconcile a proposed schema against the current one.

        Args:
            current: Schema as currently persisted, may be None or empty
            proposed: Freshly generated schema, may be None or empty

        Returns:
            ReconciliationResult with the final schema and every decision made.
            When one side has no tables the other is returned untouched: the
            same object for a Schema, the validated Schema for a plain dict.
        """
        start_time = time.perf_counter()
        current = _coerce(current, "current")
        proposed = _coerce(proposed, "proposed")

        logger.debug(
            f"Computing final schema state: current has {_table_count(current)} tables, "
            f"proposed has {_table_count(proposed)} tables"
        )

        if current is None or not current.has_tables:
            logger.info("No current schema, returning proposed schema as-is")
            return ReconciliationResult(
                status=ReconciliationStatus.PASSTHROUGH_PROPOSED,
                schema=proposed,
                execution_time_ms=_elapsed_ms(start_time),
            )

        if proposed is None or not proposed.has_tables:
            logger.info("No proposed schema, returning current schema as-is")
            return ReconciliationResult(
                status=ReconciliationStatus.PASSTHROUGH_CURRENT,
                schema=current,
                execution_time_ms=_elapsed_ms(start_time),
            )

        result = ReconciliationResult(status=ReconciliationStatus.MERGED, schema=None)
        try:
            new_id = UniqueIdGenerator(self.id_generator, taken=current.column_ids())

            # Phase A: tables and columns
            tables = self.merge_tables(current.tables, proposed.tables, new_id, result.changes)

            # Phase B: relationships
            relationships = self.reconcile_relationships(
                current.relationships, proposed.relationships, result.changes
            )

            relationships = self._handle_unresolved(tables, relationships, result)

            if self.sync_foreign_keys:
                unresolved = {id(u.relationship) for u in result.unresolved_relationships}
                tables = sync_foreign_key_flags(
                    tables, [r for r in relationships if id(r) not in unresolved]
                )

        except SchemergeError:
            raise
        except Exception as e:
            logger.error(f"Schema reconciliation failed: {e}")
            raise ReconciliationError("Schema reconciliation failed", cause=e) from e

        result.schema = Schema(tables=tables, relationships=relationships)
        result.execution_time_ms = _elapsed_ms(start_time)

        logger.info(
            f"Final schema computed: {len(tables)} tables, {len(relationships)} relationships "
            f"({result.tables_added} tables added, {result.tables_dropped} dropped, "
            f"{result.columns_added} columns added, {result.relationships_added} relationships "
            f"added, {result.relationships_dropped} removed) in {result.execution_time_ms:.1f}ms"
        )
        return result

    def merge_tables(
        self,
        current_tables: List[Table],
        proposed_tables: List[Table],
        new_id: IdGenerator,
        changes: List[SchemaChange],
    ) -> List[Table]:
        """Merge tables in proposed order; tables missing from proposed are dropped."""
        existing = {table_key(t): t for t in current_tables}
        proposed_names = {table_key(t) for t in proposed_tables}

        merged = []
        for proposed_table in proposed_tables:
            current_table = existing.get(table_key(proposed_table))
            if current_table is not None:
                logger.debug(f"Merging table: {proposed_table.name}")
                merged.append(self.merge_table(current_table, proposed_table, new_id, changes))
                changes.append(
                    SchemaChange(
                        ChangeType.MERGE_TABLE,
                        proposed_table.name,
                        f"Merged table {proposed_table.name}",
                    )
                )
            else:
                logger.debug(f"Adding new table: {proposed_table.name}")
                merged.append(self.create_table(proposed_table, new_id, changes))
                changes.append(
                    SchemaChange(
                        ChangeType.ADD_TABLE,
                        proposed_table.name,
                        f"Added table {proposed_table.name}",
                    )
                )

        for current_table in current_tables:
            if table_key(current_table) not in proposed_names:
                logger.debug(f"Dropping table: {current_table.name}")
                changes.append(
                    SchemaChange(
                        ChangeType.DROP_TABLE,
                        current_table.name,
                        f"Dropped table {current_table.name}",
                        old_value=current_table.column_names,
                    )
                )
        return merged

    def merge_table(
        self,
        current_table: Table,
        proposed_table: Table,
        new_id: IdGenerator,
        changes: List[SchemaChange],
    ) -> Table:
        """Shallow-merge table fields, proposed wins, columns merged by name."""
        columns = self.merge_columns(current_table, proposed_table, new_id, changes)

        data = _explicit_fields(current_table, exclude={"columns"})
        data.update(_explicit_fields(proposed_table, exclude={"columns"}))
        data["columns"] = columns
        return Table.model_validate(data)

    def create_table(
        self,
        proposed_table: Table,
        new_id: IdGenerator,
        changes: List[SchemaChange],
    ) -> Table:
        """Copy a brand-new table, minting an id for every column."""
        columns = []
        for proposed_column in proposed_table.columns:
            columns.append(self._new_column(proposed_column, new_id))
            changes.append(self._add_column_change(proposed_table.name, columns[-1]))

        data = _explicit_fields(proposed_table, exclude={"columns"})
        data["columns"] = columns
        return Table.model_validate(data)

    def merge_columns(
        self,
        current_table: Table,
        proposed_table: Table,
        new_id: IdGenerator,
        changes: List[SchemaChange],
    ) -> List[Column]:
        """Merge columns in proposed order, matching existing columns by name."""
        existing = index_by_name(current_table.columns)
        proposed_names = {c.name for c in proposed_table.columns}

        merged = []
        for proposed_column in proposed_table.columns:
            current_column = existing.get(proposed_column.name)
            if current_column is not None:
                column, diff = self._update_column(current_column, proposed_column)
                merged.append(column)
                if diff:
                    logger.debug(f"  Updating column: {proposed_table.name}.{column.name}")
                    changes.append(
                        SchemaChange(
                            ChangeType.UPDATE_COLUMN,
                            proposed_table.name,
                            f"Updated column {proposed_table.name}.{column.name} "
                            f"({', '.join(diff)})",
                            target=column.name,
                            old_value={k: getattr(current_column, k) for k in diff},
                            new_value={k: getattr(column, k) for k in diff},
                        )
                    )
            else:
                column = self._new_column(proposed_column, new_id)
                logger.debug(f"  Adding column: {proposed_table.name}.{column.name}")
                merged.append(column)
                changes.append(self._add_column_change(proposed_table.name, column))

        for current_column in current_table.columns:
            if current_column.name not in proposed_names:
                logger.debug(f"  Dropping column: {current_table.name}.{current_column.name}")
                changes.append(
                    SchemaChange(
                        ChangeType.DROP_COLUMN,
                        current_table.name,
                        f"Dropped column {current_table.name}.{current_column.name}",
                        target=current_column.name,
                        old_value=current_column.id,
                    )
                )
        return merged

    def reconcile_relationships(
        self,
        current_relationships: List[Relationship],
        proposed_relationships: List[Relationship],
        changes: List[SchemaChange],
    ) -> List[Relationship]:
        """
        Keep current relationships still proposed, then append new ones.

        Preserved relationships are copies of the current objects, so manual edits to
        labels or cascade actions survive.
        """
        current_keys = {relationship_key(r) for r in current_relationships}
        proposed_keys = {relationship_key(r) for r in proposed_relationships}

        final = []
        for relationship in current_relationships:
            key = relationship_key(relationship)
            if key in proposed_keys:
                logger.debug(f"Preserving relationship: {key}")
                final.append(relationship.model_copy(deep=True))
                changes.append(
                    SchemaChange(
                        ChangeType.PRESERVE_RELATIONSHIP,
                        relationship.source_table,
                        f"Preserved relationship {key}",
                        target=key,
                    )
                )
            else:
                logger.debug(f"Removing relationship: {key}")
                changes.append(
                    SchemaChange(
                        ChangeType.DROP_RELATIONSHIP,
                        relationship.source_table,
                        f"Removed relationship {key}",
                        target=key,
                    )
                )

        for relationship in proposed_relationships:
            key = relationship_key(relationship)
            if key not in current_keys:
                logger.debug(f"Adding new relationship: {key}")
                final.append(relationship.model_copy(deep=True))
                changes.append(
                    SchemaChange(
                        ChangeType.ADD_RELATIONSHIP,
                        relationship.source_table,
                        f"Added relationship {key}",
                        target=key,
                    )
                )
        return final

    def _handle_unresolved(
        self,
        tables: List[Table],
        relationships: List[Relationship],
        result: ReconciliationResult,
    ) -> List[Relationship]:
        """Report relationships whose endpoints are missing; optionally drop them."""
        unresolved = find_unresolved_relationships(tables, relationships)
        if not unresolved:
            return relationships

        for item in unresolved:
            message = f"Unresolved relationship {item.describe()}"
            if self.warn_unresolved_relationships:
                logger.warning(message)
            result.warnings.append(message)
        result.unresolved_relationships = unresolved

        if not self.drop_unresolved_relationships:
            return relationships

        dropped = {id(item.relationship) for item in unresolved}
        for item in unresolved:
            item.dropped = True
            result.changes.append(
                SchemaChange(
                    ChangeType.DROP_RELATIONSHIP,
                    item.relationship.source_table,
                    f"Removed unresolved relationship {item.key}",
                    target=item.key,
                )
            )
        return [r for r in relationships if id(r) not in dropped]

    def _update_column(self, current: Column, proposed: Column) -> Tuple[Column, List[str]]:
        data = _explicit_fields(current)
        stated = _explicit_fields(proposed)
        for name in COLUMN_UPDATE_FIELDS:
            # Unstated on the proposed side means absent, not the model default
            if name in stated:
                data[name] = stated[name]
            else:
                data.pop(name, None)
        column = Column.model_validate(data)
        diff = [
            name for name in COLUMN_UPDATE_FIELDS if getattr(current, name) != getattr(column, name)
        ]
        return column, diff

    def _new_column(self, proposed: Column, new_id: IdGenerator) -> Column:
        data = _explicit_fields(proposed)
        data.update(id=new_id(), is_foreign_key=False)
        data.pop("references", None)
        return Column.model_validate(data)

    def _add_column_change(self, table: str, column: Column) -> SchemaChange:
        return SchemaChange(
            ChangeType.ADD_COLUMN,
            table,
            f"Added column {table}.{column.name}",
            target=column.name,
            new_value=column.id,
        )


def sync_foreign_key_flags(
    tables: List[Table],
    relationships: List[Relationship],
) -> List[Table]:
    """
    Derive ``is_foreign_key``/``references`` from relationships.

    Source columns of a relationship are flagged and pointed at the target;
    columns that are no longer the source of any relationship are cleared.
    The first relationship wins when a column is the source of several.
    """
    sources: Dict[Tuple[str, str], Tuple[str, str]] = {}
    for relationship in relationships:
        sources.setdefault(
            (relationship.source_table, relationship.source_column),
            (relationship.target_table, relationship.target_column),
        )

    synced = []
    for table in tables:
        columns = []
        for column in table.columns:
            target = sources.get((table.name, column.name))
            if target is not None:
                column = column.model_copy(
                    update={
                        "is_foreign_key": True,
                        "references": ColumnReference(table=target[0], column=target[1]),
                    }
                )
            elif column.is_foreign_key or column.references is not None:
                data = _explicit_fields(column, exclude={"references"})
                data["is_foreign_key"] = False
                column = Column.model_validate(data)
            columns.append(column)
        synced.append(table.model_copy(update={"columns": columns}))
    return synced


def compute_final_schema_state(
    current: SchemaInput,
    proposed: SchemaInput,
    id_generator: Optional[IdGenerator] = None,
) -> Optional[Schema]:
    """Merge ``proposed`` into ``current`` with default reconciler settings.

    Plain dicts are validated into Schema values first, so the result is
    always a Schema (or None).
    """
    return SchemaReconciler(id_generator=id_generator).compute_final_schema_state(
        current, proposed
    )


def _explicit_fields(model: BaseModel, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Fields the document actually carried, extra payload included."""
    exclude = set(exclude)
    data = model.model_dump(exclude_unset=True, exclude=exclude)
    for key, value in (model.model_extra or {}).items():
        if key not in exclude:
            data[key] = copy.deepcopy(value)
    return data


def _coerce(value: SchemaInput, side: str) -> Optional[Schema]:
    try:
        return Schema.coerce(value)
    except ValidationError as e:
        raise SchemaValidationError(
            f"The {side} schema is not a valid schema",
            details={"errors": e.error_count()},
            cause=e,
        ) from e


def _table_count(schema: Optional[Schema]) -> int:
    if schema is None or schema.tables is None:
        return 0
    return len(schema.tables)


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000
