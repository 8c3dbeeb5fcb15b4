"""
Repositories package for the Mallard SQL assistant.

Schema discovery and LLM-based SQL generation.
"""

from .schema_catalog import SchemaCatalog, render_schema_context
from .sql_generation import SQLGenerationRepository

__all__ = [
    "SchemaCatalog",
    "SQLGenerationRepository",
    "render_schema_context",
]
