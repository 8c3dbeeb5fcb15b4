"""
DuckDB client that runs every query in a fresh `duckdb` CLI process.

Each call spawns:

    <executable> <database_path> -csv -c <sql>

The SQL is passed as a single argv entry (no shell), so it reaches DuckDB
exactly as written, quotes included.

Execution Flow:
1. Spawn the process with stdout and stderr piped
2. Drain both pipes on two concurrent reader tasks
3. Race process exit against the configured timeout
4. On timeout: kill, reap, join both readers, return a timeout failure
5. On exit: non-empty stderr is a failure regardless of exit code; then a
   non-zero exit code is a failure; otherwise stdout is decoded as CSV

No retries are performed; every failure is returned to the caller as a
failed QueryResult rather than raised.
"""

import asyncio
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from ..config import DuckDBConfig
from ..config_constants import CONNECTION_TEST_QUERY, DUCKDB_COMMAND_FLAG, DUCKDB_CSV_FLAG
from ..domain.errors import ConnectionUnavailableError
from ..domain.results import QueryResult
from ..utils.csv_decoder import decode_csv
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()


@dataclass(frozen=True)
class ProcessOutcome:
    """What a finished (or killed) engine process produced."""

    returncode: Optional[int]
    stdout: str
    stderr: str
    timed_out: bool = False


async def _drain(stream: Optional[asyncio.StreamReader]) -> bytes:
    """Read a pipe until EOF."""
    if stream is None:
        return b""
    return await stream.read()


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class DuckDBCliClient:
    """
    Query executor backed by the DuckDB command-line binary.

    Usage:
        client = DuckDBCliClient(config)
        await client.ensure_connection()

        result = await client.execute("SELECT * FROM 'orders.parquet' LIMIT 10")
        if result.success:
            print(result.column_names, result.row_count)
        else:
            print(result.error_text)
    """

    executor_type = "DuckDB CLI"

    def __init__(self, config: DuckDBConfig):
        """
        Initialize the client with configuration.

        Args:
            config: DuckDB configuration
        """
        self.config = config

        logger.info(
            "DuckDBCliClient initialized",
            executable_path=config.executable_path,
            database_path=config.database_path,
            query_timeout_seconds=config.query_timeout_seconds,
        )

    def resolve_executable(self) -> Optional[str]:
        """Return the full path of the configured executable, or None if it can't be found."""
        return shutil.which(self.config.executable_path)

    def build_command(self, sql: str) -> List[str]:
        """Build the argv for one query."""
        return [
            self.config.executable_path,
            self.config.database_path,
            DUCKDB_CSV_FLAG,
            DUCKDB_COMMAND_FLAG,
            sql,
        ]

    async def execute(self, sql: str) -> QueryResult:
        """
        Execute one SQL statement in a new engine process.

        Args:
            sql: SQL text, passed to the engine unchanged

        Returns:
            QueryResult; failures (timeout, engine error, spawn error) are
            returned with success=False, never raised
        """
        trace_id = current_trace_id()
        timeout = self.config.query_timeout_seconds

        logger.info(
            "Executing SQL query",
            sql_length=len(sql),
            timeout=timeout,
            trace_id=trace_id,
        )
        logger.debug("SQL text", sql=sql, trace_id=trace_id)

        start_time = datetime.now(timezone.utc)

        try:
            outcome = await self._run(sql)
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            logger.error(
                "Query process failed",
                error=error_msg,
                error_type=type(e).__name__,
                trace_id=trace_id,
            )
            return QueryResult.failed(error_msg, self._elapsed_ms(start_time))

        execution_time_ms = self._elapsed_ms(start_time)

        if outcome.timed_out:
            logger.warning(
                "Query timed out and was killed",
                timeout=timeout,
                execution_time_ms=round(execution_time_ms, 2),
                trace_id=trace_id,
            )
            return QueryResult.failed(
                f"Query timeout after {timeout:g} seconds",
                execution_time_ms,
                timed_out=True,
            )

        error_text = outcome.stderr.strip()
        if error_text:
            logger.warning(
                "Query returned an error",
                returncode=outcome.returncode,
                error=error_text,
                trace_id=trace_id,
            )
            return QueryResult.failed(error_text, execution_time_ms, raw_output=outcome.stdout)

        if outcome.returncode != 0:
            error_msg = f"DuckDB exited with code {outcome.returncode}"
            logger.warning("Query process exited abnormally", returncode=outcome.returncode, trace_id=trace_id)
            return QueryResult.failed(error_msg, execution_time_ms, raw_output=outcome.stdout)

        decoded = decode_csv(outcome.stdout)
        result = QueryResult.succeeded(
            column_names=decoded.column_names,
            rows=decoded.rows,
            raw_output=outcome.stdout,
            execution_time_ms=execution_time_ms,
            dropped_row_count=decoded.dropped_row_count,
        )

        logger.info(
            "SQL execution successful",
            row_count=result.row_count,
            column_count=len(result.column_names),
            execution_time_ms=round(execution_time_ms, 2),
            trace_id=trace_id,
        )

        return result

    async def test_connection(self) -> bool:
        """
        Check that the executable exists and can run a trivial query.

        Returns:
            True if "SELECT 1" succeeded; False otherwise. A missing
            executable fails without spawning anything.
        """
        trace_id = current_trace_id()

        executable = self.resolve_executable()
        if executable is None:
            logger.error(
                "DuckDB executable not found",
                executable_path=self.config.executable_path,
                trace_id=trace_id,
            )
            return False

        result = await self.execute(CONNECTION_TEST_QUERY)
        if not result.success:
            logger.error(
                "DuckDB connection test failed",
                executable=executable,
                database_path=self.config.database_path,
                error=result.error_text,
                trace_id=trace_id,
            )
            return False

        logger.info("DuckDB connection test successful", executable=executable, trace_id=trace_id)
        return True

    async def ensure_connection(self) -> None:
        """
        Verify connectivity before the conversation starts.

        Raises:
            ConnectionUnavailableError: If the executable is missing or the test query fails
        """
        if not await self.test_connection():
            raise ConnectionUnavailableError(
                "Could not connect to DuckDB",
                details={
                    "executable_path": self.config.executable_path,
                    "database_path": self.config.database_path,
                },
            )

    # =========================================================================
    # Process lifecycle
    # =========================================================================

    async def _run(self, sql: str) -> ProcessOutcome:
        """Spawn the engine, collect both streams and enforce the timeout."""
        process = await asyncio.create_subprocess_exec(
            *self.build_command(sql),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        # One reader per pipe; a full, unread pipe would block the child forever
        stdout_task = asyncio.create_task(_drain(process.stdout))
        stderr_task = asyncio.create_task(_drain(process.stderr))

        try:
            await asyncio.wait_for(process.wait(), timeout=self.config.query_timeout_seconds)
        except asyncio.TimeoutError:
            await self._kill(process)
            await self._join_readers(stdout_task, stderr_task)
            return ProcessOutcome(returncode=process.returncode, stdout="", stderr="", timed_out=True)
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            stdout_task.cancel()
            stderr_task.cancel()
            raise

        stdout, stderr = await asyncio.gather(stdout_task, stderr_task)
        return ProcessOutcome(
            returncode=process.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill the process and reap it so no zombie is left behind."""
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                # Exited between the timeout firing and the kill
                pass
        await process.wait()

    async def _join_readers(self, *tasks: "asyncio.Task[bytes]") -> None:
        """
        Wait for the output readers to finish after a kill.

        Readers normally hit EOF as soon as the process dies. A reader still
        blocked after the grace period (a grandchild holding the pipe open)
        is cancelled.
        """
        done, pending = await asyncio.wait(tasks, timeout=self.config.kill_grace_seconds)

        for task in done:
            if not task.cancelled():
                # Retrieve the exception so asyncio doesn't report it as unhandled
                task.exception()

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Output readers cancelled after kill",
                pending_readers=len(pending),
                trace_id=current_trace_id(),
            )

    @staticmethod
    def _elapsed_ms(start_time: datetime) -> float:
        return (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
