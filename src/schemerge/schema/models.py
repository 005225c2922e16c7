"""
Structural schema model for schemerge.

Tables, columns and relationships as exchanged with the designer canvas.
Field names are snake_case in Python and camelCase on the wire; unknown
fields are kept as opaque payload so they survive a reconciliation pass.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Cardinality(str, Enum):
    """Relationship cardinality."""

    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"
    MANY_TO_MANY = "N:N"


_CARDINALITY_SYNONYMS = {
    "one-to-one": Cardinality.ONE_TO_ONE,
    "one_to_one": Cardinality.ONE_TO_ONE,
    "one-to-many": Cardinality.ONE_TO_MANY,
    "one_to_many": Cardinality.ONE_TO_MANY,
    "1:n": Cardinality.ONE_TO_MANY,
    "many-to-many": Cardinality.MANY_TO_MANY,
    "many_to_many": Cardinality.MANY_TO_MANY,
    "n:n": Cardinality.MANY_TO_MANY,
    "n:m": Cardinality.MANY_TO_MANY,
}


class ReferentialAction(str, Enum):
    """ON DELETE / ON UPDATE actions."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


def parse_cardinality(value: Optional[str]) -> Optional[Cardinality]:
    """Interpret a cardinality spelling; unknown spellings yield None.

    Relationship documents keep whatever the caller wrote. This only reads
    it, so ``"one-to-many"`` and ``"1:n"`` both map to ``Cardinality.ONE_TO_MANY``.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.lower() in _CARDINALITY_SYNONYMS:
        return _CARDINALITY_SYNONYMS[text.lower()]
    try:
        return Cardinality(text.upper())
    except ValueError:
        return None


def parse_referential_action(value: Optional[str]) -> Optional[ReferentialAction]:
    """Interpret an ON DELETE/ON UPDATE spelling; unknown spellings yield None."""
    if not isinstance(value, str):
        return None
    try:
        return ReferentialAction(value.strip().replace("_", " ").upper())
    except ValueError:
        return None


class SchemaModel(BaseModel):
    """Base for all schema models: camelCase aliases, opaque extras kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_dict(self) -> Dict[str, Any]:
        """Dump to the camelCase JSON shape with only the fields that were set."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class ColumnReference(SchemaModel):
    """Foreign key target of a column, by table and column name."""

    table: str
    column: str


class Column(SchemaModel):
    """A table column.

    ``id`` is assigned once and never recomputed. Proposed schemas carry no
    ids; they are matched to existing columns by ``name``. Attributes the
    document does not state stay None and are left out of ``to_dict()``.
    """

    id: Optional[str] = None
    name: str
    type: Optional[str] = None
    is_primary_key: Optional[bool] = None
    is_nullable: Optional[bool] = None
    default_value: Optional[Any] = None
    description: Optional[str] = None
    is_foreign_key: bool = False
    references: Optional[ColumnReference] = None


class Index(SchemaModel):
    """A table index."""

    name: str
    columns: List[str] = Field(default_factory=list)
    unique: bool = False


class Table(SchemaModel):
    """A table, identified by its ``name``."""

    name: str
    columns: List[Column] = Field(default_factory=list)
    description: Optional[str] = None
    indexes: List[Index] = Field(default_factory=list)

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class Relationship(SchemaModel):
    """A foreign key link between two columns.

    Identity is structural: the four endpoint names, see ``key``.
    """

    source_table: str
    source_column: str
    target_table: str
    target_column: str
    type: Optional[str] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None
    name: Optional[str] = None

    @property
    def cardinality(self) -> Optional[Cardinality]:
        """Known cardinality for ``type``, or None if unset or unrecognized."""
        return parse_cardinality(self.type)

    @property
    def delete_action(self) -> Optional[ReferentialAction]:
        return parse_referential_action(self.on_delete)

    @property
    def update_action(self) -> Optional[ReferentialAction]:
        return parse_referential_action(self.on_update)

    @property
    def key(self) -> str:
        """Structural key ``sourceTable.sourceColumn->targetTable.targetColumn``."""
        return (
            f"{self.source_table}.{self.source_column}"
            f"->{self.target_table}.{self.target_column}"
        )


class Schema(SchemaModel):
    """Root value: ordered tables and ordered relationships.

    ``tables`` is ``None`` when the document carried no tables at all.
    """

    tables: Optional[List[Table]] = None
    relationships: List[Relationship] = Field(default_factory=list)

    @field_validator("relationships", mode="before")
    @classmethod
    def default_relationships(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def has_tables(self) -> bool:
        """Whether the schema has any usable tables to merge against."""
        return bool(self.tables)

    def get_table(self, name: str) -> Optional[Table]:
        for table in self.tables or []:
            if table.name == name:
                return table
        return None

    def table_names(self) -> List[str]:
        return [t.name for t in self.tables or []]

    def column_ids(self) -> List[str]:
        """All column ids in table order, skipping columns without one."""
        return [
            column.id
            for table in self.tables or []
            for column in table.columns
            if column.id is not None
        ]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schema":
        return cls.model_validate(data)

    @classmethod
    def coerce(cls, value: Union["Schema", Dict[str, Any], None]) -> Optional["Schema"]:
        """Accept a Schema, a plain dict in wire shape, or None."""
        if value is None or isinstance(value, Schema):
            return value
        return cls.model_validate(value)
