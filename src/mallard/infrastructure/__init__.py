"""
Infrastructure layer for external integrations.

This module contains clients for the external processes and services the
assistant talks to: the DuckDB CLI and the LLM provider.
"""

from .duckdb_cli_client import DuckDBCliClient
from .llm_client import LLMClient
from .query_executor import QueryExecutor

__all__ = ["DuckDBCliClient", "LLMClient", "QueryExecutor"]
