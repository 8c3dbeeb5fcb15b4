"""
Query executor interface.

The conversation service and schema catalog depend on this protocol rather
than on a concrete engine client.
"""

from typing import Protocol

from ..domain.results import QueryResult


class QueryExecutor(Protocol):
    """Anything that can run SQL and report the outcome as a QueryResult."""

    executor_type: str

    async def execute(self, sql: str) -> QueryResult:
        """Run one statement; failures are returned, not raised."""
        ...

    async def test_connection(self) -> bool:
        """Return True if the engine is usable."""
        ...
