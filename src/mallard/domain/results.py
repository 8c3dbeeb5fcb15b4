"""
Query execution result models.

A QueryResult is created fresh for every executor call and never mutated
afterwards; the caller that issued the query owns it.
"""

from typing import List, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import ExecutionTimeoutError, QueryExecutionError
from .types import ResultRow


class QueryResult(BaseModel):
    """
    Outcome of one query execution.

    Invariants (checked on construction):
    - a failed result carries no rows
    - row_count equals the number of rows
    """

    model_config = ConfigDict(frozen=True)

    success: bool = Field(..., description="Whether the query ran and its output was decoded")
    raw_output: str = Field(default="", description="Standard output of the engine, undecoded")
    error_text: str = Field(default="", description="Engine error text or failure reason")
    row_count: int = Field(default=0, ge=0, description="Number of decoded rows")
    execution_time_ms: float = Field(default=0.0, ge=0.0, description="Wall-clock time from spawn to completion")
    column_names: List[str] = Field(default_factory=list, description="Column names in engine order")
    rows: List[ResultRow] = Field(default_factory=list, description="Rows as column name -> text value")
    timed_out: bool = Field(default=False, description="Whether the process was killed on timeout")
    dropped_row_count: int = Field(default=0, ge=0, description="Rows discarded for a field count mismatch")

    @model_validator(mode="after")
    def validate_invariants(self) -> Self:
        """Reject results that break the row invariants."""
        if not self.success and self.rows:
            raise ValueError("a failed QueryResult cannot carry rows")
        if self.row_count != len(self.rows):
            raise ValueError(
                f"row_count ({self.row_count}) does not match number of rows ({len(self.rows)})"
            )
        if len(set(self.column_names)) != len(self.column_names):
            raise ValueError("column names must be unique")
        return self

    @classmethod
    def succeeded(
        cls,
        column_names: List[str],
        rows: List[ResultRow],
        raw_output: str,
        execution_time_ms: float,
        dropped_row_count: int = 0,
    ) -> "QueryResult":
        """Build a successful result; row_count is derived from rows."""
        return cls(
            success=True,
            raw_output=raw_output,
            row_count=len(rows),
            execution_time_ms=execution_time_ms,
            column_names=column_names,
            rows=rows,
            dropped_row_count=dropped_row_count,
        )

    @classmethod
    def failed(
        cls,
        error_text: str,
        execution_time_ms: float,
        raw_output: str = "",
        timed_out: bool = False,
    ) -> "QueryResult":
        """Build a failed result with no rows."""
        return cls(
            success=False,
            raw_output=raw_output,
            error_text=error_text,
            execution_time_ms=execution_time_ms,
            timed_out=timed_out,
        )

    @property
    def has_rows(self) -> bool:
        return self.success and self.row_count > 0

    def raise_for_status(self) -> None:
        """
        Raise the matching error kind if the query failed.

        Raises:
            ExecutionTimeoutError: If the process was killed on timeout
            QueryExecutionError: If the engine reported an error
        """
        if self.success:
            return
        if self.timed_out:
            raise ExecutionTimeoutError(self.error_text)
        raise QueryExecutionError(self.error_text)
