"""
Configuration module for the Mallard SQL assistant.

This module defines all configuration classes using Pydantic BaseModel and BaseSettings.
Configuration is loaded from environment variables with nested delimiter "__".

Example .env:
    LLM__OPENROUTER_API_KEY=sk-xxx
    DUCKDB__EXECUTABLE_PATH=/usr/local/bin/duckdb
    DUCKDB__QUERY_TIMEOUT_SECONDS=120

Usage:
    from mallard.config import get_settings
    settings = get_settings()
    print(settings.duckdb.database_path)
"""

from functools import lru_cache

from mallard.config_constants import (
    LogFormat,
    LogLevel,
    OPENROUTER_LLM_MODELS,
    OPEN_ROUTER_API_URL,
)

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# DUCKDB CONFIGURATION
# =============================================================================

class DuckDBConfig(BaseModel):
    """
    DuckDB CLI executor configuration.

    Used by DuckDBCliClient, which spawns one duckdb process per query.
    """

    # Path to the duckdb executable (absolute path or a name looked up on PATH)
    executable_path: str = "duckdb"

    # Database file every query runs against
    # Created by duckdb on first use if it doesn't exist
    database_path: str = "./data.duckdb"

    # Maximum time (seconds) a query process may run before it is killed
    # Measured from process start; no partial results are returned on timeout
    query_timeout_seconds: float = 60.0

    # Time (seconds) to wait for the output readers to finish after a kill
    # Readers still running after this are cancelled
    kill_grace_seconds: float = 5.0


# =============================================================================
# SCHEMA DISCOVERY CONFIGURATION
# =============================================================================

class SchemaConfig(BaseModel):
    """
    Schema discovery configuration.

    The SchemaCatalog scans schema_path recursively for data files and
    describes each one through the executor.
    """

    # Directory containing the data files that become tables
    schema_path: str = "./schemas"

    # Glob pattern (matched recursively) selecting data files
    file_glob: str = "*.parquet"


# =============================================================================
# LLM CONFIGURATION (OpenRouter)
# =============================================================================

class LLMConfig(BaseModel):
    """
    LLM client configuration for SQL generation.

    Uses OpenRouter API to access various LLM providers (Claude, GPT-4, etc.).
    Temperature is 0.0 so repeated questions get the same SQL.
    """

    # OpenRouter API key (get from https://openrouter.ai/keys)
    # Required; the assistant refuses to start without it
    openrouter_api_key: str

    # Model used for SQL generation and explanations
    # Format: "provider/model-name" (e.g., "anthropic/claude-sonnet-4.5")
    default_model: str = OPENROUTER_LLM_MODELS.ANTHROPIC_SONNET_45

    # Sampling temperature (0.0-1.0)
    temperature: float = 0.0

    # Maximum tokens in LLM response
    # Replies carry explanation + SQL + teaching note, so this is generous
    max_tokens: int = 4096

    # Maximum characters allowed in LLM input (system prompt + full history)
    # Long conversations hit this first; "clear" resets the history
    max_input_chars: int = 100000

    # OpenRouter API base URL (don't change unless using proxy)
    base_url: str = OPEN_ROUTER_API_URL

    # Maximum time (seconds) to wait for LLM response
    timeout_seconds: int = 60

    # Number of retry attempts on transient LLM errors (rate limits, timeouts)
    max_retries: int = 3


# =============================================================================
# CONVERSATION CONFIGURATION
# =============================================================================

class ConversationConfig(BaseModel):
    """Display limits for the interactive conversation loop."""

    # Number of result rows rendered after a query; the rest are summarized
    display_row_limit: int = 10

    # Cell values longer than this are cut and suffixed with "..."
    max_cell_width: int = 50

    # Number of executed queries listed by the "history" command
    history_display_limit: int = 10

    # Characters of SQL shown per entry in the "history" command
    history_sql_preview_chars: int = 100


# =============================================================================
# EXPORT CONFIGURATION
# =============================================================================

class ExportConfig(BaseModel):
    """Spreadsheet export configuration."""

    # Directory relative filenames are resolved against
    output_directory: str = "."

    # Prefix of the generated filename when "export" is given no name
    default_filename_prefix: str = "results"

    # Upper bound for auto-fitted column widths in the Results sheet
    max_column_width: int = 50


# =============================================================================
# APPLICATION CONFIGURATION
# =============================================================================

class AppConfig(BaseModel):
    """
    General application settings.

    Logs go to stderr; the interactive surface owns stdout.
    """

    # Logging level: DEBUG, INFO, WARNING, ERROR
    # WARNING keeps the interactive session readable; DEBUG logs SQL and prompts
    log_level: LogLevel = LogLevel.WARNING

    # "console" for one-line human readable records, "json" for pretty JSON
    log_format: LogFormat = LogFormat.CONSOLE


# =============================================================================
# ROOT SETTINGS (Environment Loading)
# =============================================================================

class Settings(BaseSettings):
    """
    Root settings class that loads all configuration from environment.

    Environment variables use "__" (double underscore) as nested delimiter.
    Example: DUCKDB__DATABASE_PATH sets settings.duckdb.database_path

    Required environment variables (no defaults):
    - LLM__OPENROUTER_API_KEY
    """

    # DuckDB executable and database
    duckdb: DuckDBConfig = DuckDBConfig()

    # Data file discovery
    schema_discovery: SchemaConfig = SchemaConfig()

    # LLM client settings (OpenRouter)
    llm: LLMConfig

    # Interactive display limits
    conversation: ConversationConfig = ConversationConfig()

    # Spreadsheet export
    export: ExportConfig = ExportConfig()

    # Application-wide settings
    app: AppConfig = AppConfig()

    model_config = SettingsConfigDict(
        env_file=".env",            # Load from .env file in working directory
        env_file_encoding="utf-8",  # UTF-8 encoding for .env file
        case_sensitive=False,       # ENV_VAR and env_var are equivalent
        env_nested_delimiter="__",  # Use __ for nested config (DUCKDB__DATABASE_PATH)
        extra="ignore",             # Unrelated variables in .env are not an error
    )


# =============================================================================
# SINGLETON ACCESSOR
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance (singleton pattern).

    Settings are loaded once and cached for the lifetime of the process.

    Returns:
        Settings instance with all configuration loaded from environment

    Raises:
        pydantic.ValidationError: If required values (the API key) are missing
    """
    return Settings()  # type: ignore[call-arg]
