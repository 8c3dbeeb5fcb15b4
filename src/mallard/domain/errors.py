"""
Custom exception hierarchy for the Mallard SQL assistant.

This module defines the exception hierarchy with:
- Consistent machine-readable error codes
- Detailed error messages shown to the user
- Optional structured details for logging

Exception Categories:
- Start-up errors (fatal): ConfigurationError, ConnectionUnavailableError
- Per-turn errors (reported, loop continues): everything else

Usage:
    raise ConnectionUnavailableError("duckdb executable not found", details={"path": exe})
    raise NoDataToExportError()
"""

from typing import Any, Dict, Optional


class MallardError(Exception):
    """
    Base exception for all Mallard errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code (e.g., "EXECUTION_TIMEOUT")
        details: Optional dictionary with additional error context
    """

    error_code: str = "INTERNAL_ERROR"
    default_message: str = "Unexpected error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        result: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Start-up Errors (fatal)
# =============================================================================


class ConfigurationError(MallardError):
    """
    Raised when configuration is invalid or missing.

    Examples:
        - LLM__OPENROUTER_API_KEY not set
        - Invalid configuration values
    """

    error_code = "CONFIGURATION_ERROR"
    default_message = "Invalid configuration"


class ConnectionUnavailableError(MallardError):
    """
    Raised when the DuckDB executable is missing or the test query fails.

    Never recoverable: the assistant cannot run without an engine.
    """

    error_code = "CONNECTION_UNAVAILABLE"
    default_message = "Could not connect to DuckDB"


# =============================================================================
# Execution Errors
# =============================================================================


class QueryExecutionError(MallardError):
    """
    Raised when a query fails in the engine.

    The message is the engine's error text, passed through verbatim so
    users can diagnose their SQL.

    Examples:
        - Non-empty standard error (syntax error, unknown table)
        - Non-zero exit code
        - Process could not be spawned
    """

    error_code = "EXECUTION_FAILURE"
    default_message = "Query execution failed"


class ExecutionTimeoutError(QueryExecutionError):
    """Raised when the engine process exceeded the query timeout and was killed."""

    error_code = "EXECUTION_TIMEOUT"
    default_message = "Query timed out"


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(MallardError):
    """
    Raised when LLM operations fail.

    Examples:
        - LLM API unreachable
        - Empty response
        - Conversation exceeds the input size limit
    """

    error_code = "LLM_ERROR"
    default_message = "LLM request failed"


class MalformedReplyError(MallardError):
    """Raised when a successful LLM reply contains no SQL."""

    error_code = "MALFORMED_REPLY"
    default_message = "No SQL query was generated. Try rephrasing your request."


# =============================================================================
# Command Precondition Errors
# =============================================================================


class NoDataToExportError(MallardError):
    """Raised when "export" runs without a successful, non-empty last result."""

    error_code = "NO_DATA_TO_EXPORT"
    default_message = "No query results to export. Execute a query first."


class NoQueryToExplainError(MallardError):
    """Raised when "explain" has neither an argument nor a previously executed query."""

    error_code = "NO_QUERY_TO_EXPLAIN"
    default_message = "No query to explain. Provide SQL or execute a query first."


class ExportError(MallardError):
    """
    Raised when writing the spreadsheet fails.

    Examples:
        - Directory does not exist
        - Permission denied
    """

    error_code = "EXPORT_ERROR"
    default_message = "Export failed"
