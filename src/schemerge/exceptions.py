"""
Exception classes for schemerge.
"""

from typing import Any, Dict, List, Optional


class SchemergeError(Exception):
    """Base exception for all schemerge errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(SchemergeError):
    """Raised when there's an error in configuration."""

    pass


class SchemaLoadError(SchemergeError):
    """Raised when a schema document cannot be read or parsed."""

    def __init__(
        self,
        path: str,
        reason: str,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(f"Cannot load schema from {path}: {reason}", cause=cause)
        self.path = path
        self.reason = reason


class SchemaValidationError(SchemergeError):
    """Raised when a schema document does not have the expected shape."""

    pass


class ReconciliationError(SchemergeError):
    """Raised when a reconciliation pass fails unexpectedly."""

    pass


class IntegrityError(SchemergeError):
    """Raised when a schema has error-severity integrity issues."""

    def __init__(self, issues: List[Any]) -> None:
        super().__init__(
            f"Schema has {len(issues)} integrity error(s)",
            details={"first": issues[0].message} if issues else None,
        )
        self.issues = issues
