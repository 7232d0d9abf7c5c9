"""Domain-specific exceptions for the e-commerce marts pipeline.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from EcomAPIError for easy catching.
"""

from __future__ import annotations


class EcomAPIError(Exception):
    """Base exception for all e-commerce marts errors.

    Users can catch this exception to handle any pipeline error.
    """

    pass


class ConfigError(EcomAPIError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid configuration values are provided
    - Configuration files cannot be loaded or parsed
    - An unknown report name is requested
    """

    pass


class DataQualityError(EcomAPIError):
    """Raised when data quality checks fail.

    This is the parent of every error that means "the data cannot be trusted",
    as opposed to an operational failure of the pipeline itself.
    """

    pass


class MalformedInput(DataQualityError):
    """Raised when a raw value cannot be coerced to its typed column.

    Normalisation errors are fatal for the whole run: no mart is written.

    Attributes:
        table: Raw table name (e.g. "orders").
        column: Raw column name (e.g. "created_at").
        rows: Zero-based row positions of the offending values (sample).
        values: The offending raw values (sample).
    """

    def __init__(
        self,
        table: str,
        column: str,
        reason: str,
        rows: list[int] | None = None,
        values: list[object] | None = None,
    ) -> None:
        self.table = table
        self.column = column
        self.reason = reason
        self.rows = rows or []
        self.values = values or []
        detail = f"{table}.{column}: {reason}"
        if self.rows:
            detail += f" (rows {self.rows}, values {self.values!r})"
        super().__init__(detail)


class ReferentialGap(DataQualityError):
    """Raised when a child row references a missing parent and strict mode is on.

    With the default configuration gaps are only reported; outer joins turn
    them into null-extended rows.
    """

    pass


class FanOutRisk(DataQualityError):
    """Raised when a mart has duplicate rows on its grain key.

    Duplicate grain keys mean a one-to-many child was joined without being
    aggregated first.
    """

    pass


class ETLError(EcomAPIError):
    """Raised when a pipeline stage fails for operational reasons."""

    pass


class PipelineLockedError(ETLError):
    """Raised when another run holds the marts lock."""

    pass
