"""
Command-line entry point for the Mallard SQL assistant.

Start-up sequence:
1. Parse arguments and load settings (CLI flags override environment)
2. Configure logging
3. Verify DuckDB is reachable (fatal if not)
4. Discover table schemas from data files
5. Connect the LLM client and run the interactive session

Only start-up failures end the process with a non-zero exit code; errors
during the session are reported per turn.
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, Optional, Sequence

from pydantic import ValidationError
from rich.console import Console

from . import __version__
from .config import Settings, get_settings
from .config_constants import LogLevel
from .domain.conversation import ConversationContext
from .domain.errors import ConfigurationError, MallardError
from .infrastructure.duckdb_cli_client import DuckDBCliClient
from .infrastructure.llm_client import LLMClient
from .repositories.schema_catalog import SchemaCatalog
from .repositories.sql_generation import SQLGenerationRepository
from .services.conversation_service import ConversationService
from .services.export_service import SpreadsheetExporter
from .utils.logging import configure_logging, get_module_logger
from .utils.tracing import start_turn_trace


logger = get_module_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mallard",
        description="Conversational DuckDB SQL assistant.",
    )
    parser.add_argument(
        "-s", "--schema-path",
        help="Directory scanned for Parquet files (default: ./schemas)",
    )
    parser.add_argument(
        "-d", "--db-path",
        help="DuckDB database file (default: ./data.duckdb)",
    )
    parser.add_argument(
        "--duckdb-exe",
        help="Path to the duckdb executable (default: duckdb on PATH)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Query timeout in seconds (default: 60)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=[level.value for level in LogLevel],
        help="Log level for stderr output (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with any command-line flags applied."""
    duckdb_updates: Dict[str, Any] = {}
    if args.db_path:
        duckdb_updates["database_path"] = args.db_path
    if args.duckdb_exe:
        duckdb_updates["executable_path"] = args.duckdb_exe
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ConfigurationError("--timeout must be greater than zero")
        duckdb_updates["query_timeout_seconds"] = args.timeout

    updates: Dict[str, Any] = {}
    if duckdb_updates:
        updates["duckdb"] = settings.duckdb.model_copy(update=duckdb_updates)
    if args.schema_path:
        updates["schema_discovery"] = settings.schema_discovery.model_copy(
            update={"schema_path": args.schema_path}
        )
    if args.log_level:
        updates["app"] = settings.app.model_copy(update={"log_level": LogLevel(args.log_level)})

    return settings.model_copy(update=updates) if updates else settings


def load_settings(args: argparse.Namespace) -> Settings:
    """
    Load settings from the environment and apply command-line flags.

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        missing = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise ConfigurationError(
            "Invalid or missing settings. Set LLM__OPENROUTER_API_KEY in the environment or .env file.",
            details={"fields": missing},
        ) from e
    return apply_overrides(settings, args)


async def run_session(settings: Settings, console: Console) -> None:
    """
    Start every component and run the interactive session.

    Raises:
        ConnectionUnavailableError: If DuckDB can't run a test query
        LLMError: If the LLM client can't be initialized
    """
    start_turn_trace()

    executor = DuckDBCliClient(settings.duckdb)
    console.print(f"Testing connection to DuckDB ({executor.executor_type})...", markup=False, highlight=False)
    await executor.ensure_connection()
    console.print("✓ Connection successful", style="green")

    catalog = SchemaCatalog(executor, file_glob=settings.schema_discovery.file_glob)
    schemas = await catalog.load_all(settings.schema_discovery.schema_path)

    llm_client = LLMClient(settings.llm)
    await llm_client.connect()

    try:
        with SpreadsheetExporter(settings.export) as exporter:
            service = ConversationService(
                executor=executor,
                generator=SQLGenerationRepository(llm_client),
                exporter=exporter,
                context=ConversationContext(schemas=schemas),
                config=settings.conversation,
                console=console,
            )
            await service.run()
    finally:
        await llm_client.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console script entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    console = Console()
    error_console = Console(stderr=True)

    try:
        settings = load_settings(args)
    except ConfigurationError as e:
        configure_logging()
        error_console.print(f"Error: {e.message}", style="red", markup=False, highlight=False)
        return 1

    configure_logging(settings.app)
    logger.info("Starting Mallard", version=__version__, database_path=settings.duckdb.database_path)

    try:
        asyncio.run(run_session(settings, console))
    except MallardError as e:
        logger.error("Start-up failed", **e.to_dict())
        error_console.print(f"Error: {e.message}", style="red", markup=False, highlight=False)
        for key, value in e.details.items():
            error_console.print(f"  {key}: {value}", markup=False, highlight=False)
        return 1
    except KeyboardInterrupt:
        console.print("\nGoodbye!")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
