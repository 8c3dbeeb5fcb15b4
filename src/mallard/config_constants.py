from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"


class OPENROUTER_LLM_MODELS(str, Enum):
    # Anthropic Claude models
    ANTHROPIC_SONNET_45 = "anthropic/claude-sonnet-4.5"
    ANTHROPIC_HAIKU_45 = "anthropic/claude-haiku-4.5"

    # OpenAI models
    GPT_4O = "openai/gpt-4o"
    GPT_4O_MINI = "openai/gpt-4o-mini"


OPEN_ROUTER_API_URL = "https://openrouter.ai/api/v1"

# -------------------------
# DuckDB CLI Constants
# -------------------------

# Output mode flag passed to the duckdb executable; stdout becomes header + rows
DUCKDB_CSV_FLAG = "-csv"

# Flag that runs a single command and exits
DUCKDB_COMMAND_FLAG = "-c"

# Trivial query used to verify the executable and database are usable
CONNECTION_TEST_QUERY = "SELECT 1 AS test"

# -------------------------
# Assistant Reply Tags
# -------------------------

EXPLANATION_TAG = "explanation"
SQL_TAG = "sql"
TEACHING_NOTE_TAG = "teaching_note"
