"""
Reading and writing schema documents.

Schemas travel as JSON (the shape the canvas stores) or YAML (handier for
hand-written fixtures). The format is picked by file suffix.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import SchemaLoadError, SchemaValidationError
from .schema.models import Schema


logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def detect_format(path: Union[str, Path]) -> str:
    """Return ``"yaml"`` for .yaml/.yml files and ``"json"`` otherwise."""
    return "yaml" if Path(path).suffix.lower() in YAML_SUFFIXES else "json"


def parse_schema(text: str, fmt: str = "json", source: str = "<string>") -> Optional[Schema]:
    """Parse schema text; a ``null`` document yields None."""
    try:
        data = yaml.safe_load(text) if fmt == "yaml" else json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaLoadError(source, f"invalid {fmt.upper()}", cause=e)

    if data is None:
        return None
    if not isinstance(data, dict):
        raise SchemaValidationError(
            f"Schema document {source} must be an object",
            details={"type": type(data).__name__},
        )
    try:
        return Schema.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(
            f"Schema document {source} is not a valid schema",
            details={"errors": e.error_count()},
            cause=e,
        )


def load_schema(path: Union[str, Path]) -> Optional[Schema]:
    """Load a schema document from a JSON or YAML file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaLoadError(str(path), e.strerror or "cannot read file", cause=e)

    schema = parse_schema(text, detect_format(path), source=str(path))
    logger.debug(
        f"Loaded schema from {path}: "
        f"{len(schema.tables or []) if schema else 0} tables"
    )
    return schema


def schema_to_data(schema: Optional[Schema]) -> Any:
    return None if schema is None else schema.to_dict()


def dump_schema(
    schema: Optional[Schema],
    path: Optional[Union[str, Path]] = None,
    fmt: Optional[str] = None,
    indent: int = 2,
) -> str:
    """
    Serialize a schema and optionally write it to ``path``.

    Args:
        schema: Schema to serialize, None is written as ``null``
        path: File to write, nothing is written when omitted
        fmt: ``"json"`` or ``"yaml"``; defaults to the path's format, else JSON
        indent: Indentation width

    Returns:
        The serialized text
    """
    if fmt is None:
        fmt = detect_format(path) if path is not None else "json"

    data = schema_to_data(schema)
    if fmt == "yaml":
        text = yaml.safe_dump(data, default_flow_style=False, indent=indent, sort_keys=False)
    else:
        text = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"

    if path is not None:
        Path(path).write_text(text, encoding="utf-8")
        logger.debug(f"Wrote schema to {path}")
    return text
