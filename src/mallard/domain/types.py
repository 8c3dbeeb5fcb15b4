"""
Type aliases for the Mallard assistant.

Provides reusable, descriptive type aliases for common patterns
to improve code readability and type safety.
"""

from typing import Dict, Mapping

from .schemas import TableSchema


# Table catalog: {table_name: TableSchema}
SchemaMap = Dict[str, TableSchema]

# Read-only view of the catalog handed to collaborators
SchemaView = Mapping[str, TableSchema]

# One decoded result row: {column_name: text value}
ResultRow = Dict[str, str]
