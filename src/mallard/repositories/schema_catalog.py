"""
Schema Catalog.

Discovers data files and describes each one through the query executor,
producing the table name -> TableSchema mapping the conversation runs on.

Discovery Flow:
1. Find files under the schema directory matching the glob (recursively)
2. Run one DESCRIBE query per file
3. Map the column_name / column_type / null fields to ColumnInfo
4. Register the table under the file's base name

A file whose DESCRIBE fails or returns no rows is skipped with a warning.
Two files with the same base name map to the same table; the one
discovered last wins.

Usage:
    catalog = SchemaCatalog(executor)
    schemas = await catalog.load_all("./schemas")
    print(render_schema_context(schemas))
"""

from pathlib import Path
from typing import List, Mapping, Optional

from mallard.domain.results import QueryResult
from mallard.domain.schemas import ColumnInfo, TableSchema
from mallard.domain.types import SchemaMap
from mallard.infrastructure.query_executor import QueryExecutor
from mallard.utils.logging import get_module_logger
from mallard.utils.tracing import current_trace_id

logger = get_module_logger()

NO_SCHEMA_CONTEXT = "No schema information available yet."


def describe_query(file_path: Path) -> str:
    """Build the DESCRIBE statement for one data file."""
    # DuckDB accepts forward slashes on every platform; quotes are doubled for the string literal
    literal = file_path.as_posix().replace("'", "''")
    return f"DESCRIBE SELECT * FROM '{literal}' LIMIT 1"


def render_schema_context(schemas: Mapping[str, TableSchema]) -> str:
    """
    Render the catalog for the LLM system prompt.

    Returns:
        "Available Tables:" followed by one "- table (col type, ...)" line per table
    """
    if not schemas:
        return NO_SCHEMA_CONTEXT

    lines = ["Available Tables:"]
    for schema in schemas.values():
        lines.append(f"- {schema.table_name} ({schema.render_columns()})")
    return "\n".join(lines)


class SchemaCatalog:
    """
    Builds table schemas from data files.

    Owns the discovered mapping; callers get a copy.
    """

    def __init__(self, executor: QueryExecutor, file_glob: str = "*.parquet"):
        self.executor = executor
        self.file_glob = file_glob
        self._schemas: SchemaMap = {}

    @property
    def schemas(self) -> SchemaMap:
        return dict(self._schemas)

    def discover_files(self, directory: Path) -> List[Path]:
        """Return matching data files under directory, in a stable order."""
        return sorted(path for path in directory.rglob(self.file_glob) if path.is_file())

    async def load_all(self, directory: str) -> SchemaMap:
        """
        Discover and describe every data file under directory.

        Args:
            directory: Root directory to scan

        Returns:
            Mapping of table name to TableSchema (empty if nothing usable was found)
        """
        trace_id = current_trace_id()
        self._schemas = {}

        root = Path(directory)
        if not root.is_dir():
            logger.warning("Schema directory does not exist", directory=directory, trace_id=trace_id)
            return self.schemas

        files = self.discover_files(root)
        if not files:
            logger.warning(
                "No data files found",
                directory=directory,
                file_glob=self.file_glob,
                trace_id=trace_id,
            )
            return self.schemas

        logger.info("Loading schemas", directory=directory, file_count=len(files), trace_id=trace_id)

        for file_path in files:
            schema = await self.describe_file(file_path)
            if schema is None:
                continue

            previous = self._schemas.get(schema.table_name)
            if previous is not None:
                logger.warning(
                    "Duplicate table name, replacing earlier file",
                    table_name=schema.table_name,
                    previous_source=previous.source_identifier,
                    source=schema.source_identifier,
                    trace_id=trace_id,
                )

            self._schemas[schema.table_name] = schema
            logger.info(
                "Loaded table schema",
                table_name=schema.table_name,
                column_count=len(schema.columns),
                trace_id=trace_id,
            )

        logger.info("Schema loading complete", table_count=len(self._schemas), trace_id=trace_id)
        return self.schemas

    async def describe_file(self, file_path: Path) -> Optional[TableSchema]:
        """
        Describe one data file.

        Returns:
            TableSchema, or None if the file could not be described
        """
        result = await self.executor.execute(describe_query(file_path))

        if not result.success or result.row_count == 0:
            logger.warning(
                "Skipping data file",
                file=str(file_path),
                reason=result.error_text or "no columns returned",
                trace_id=current_trace_id(),
            )
            return None

        return TableSchema(
            table_name=file_path.stem,
            source_identifier=str(file_path),
            columns=self._columns_from_result(result),
        )

    @staticmethod
    def _columns_from_result(result: QueryResult) -> List[ColumnInfo]:
        columns: List[ColumnInfo] = []
        for row in result.rows:
            name = row.get("column_name", "")
            if not name:
                continue
            null_flag = row.get("null")
            columns.append(
                ColumnInfo(
                    name=name,
                    declared_type=row.get("column_type", ""),
                    nullable=True if null_flag is None else null_flag.strip().upper() == "YES",
                )
            )
        return columns
