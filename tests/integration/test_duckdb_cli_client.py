"""
Integration tests for DuckDBCliClient.

Process handling (timeout, kill, stream precedence) is tested against small
shell scripts that stand in for the duckdb binary. The TestRealDuckDB class
runs against an installed duckdb and is skipped when none is on PATH.

Usage:
    # Run all executor tests
    pytest tests/integration/test_duckdb_cli_client.py -v

    # Only the tests that need a real duckdb
    pytest tests/integration/test_duckdb_cli_client.py -m integration -v
"""

import asyncio
import shutil
import sys
import time
from pathlib import Path

import pytest

from mallard.config import DuckDBConfig
from mallard.domain.errors import ConnectionUnavailableError
from mallard.infrastructure.duckdb_cli_client import DuckDBCliClient

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="stand-in engines are POSIX shell scripts")


def fake_engine(tmp_path: Path, body: str, name: str = "fake-duckdb") -> str:
    """Write an executable script that receives: <db> -csv -c <sql>."""
    script = tmp_path / name
    script.write_text(f"#!/bin/sh\n{body}\n")
    script.chmod(0o755)
    return str(script)


def make_client(tmp_path: Path, body: str, timeout: float = 5.0) -> DuckDBCliClient:
    return DuckDBCliClient(
        DuckDBConfig(
            executable_path=fake_engine(tmp_path, body),
            database_path=str(tmp_path / "test.duckdb"),
            query_timeout_seconds=timeout,
            kill_grace_seconds=1.0,
        )
    )


class TestDuckDBCliClient:
    """Executor behaviour against stand-in engines."""

    def test_build_command(self, tmp_path):
        client = DuckDBCliClient(DuckDBConfig(executable_path="duckdb", database_path="db.duckdb"))
        assert client.build_command("SELECT 1") == ["duckdb", "db.duckdb", "-csv", "-c", "SELECT 1"]

    @pytest.mark.asyncio
    async def test_csv_output_decoded(self, tmp_path):
        client = make_client(tmp_path, """printf 'id,name\\n1,"Smith, J"\\n2,Jones\\n'""")

        result = await client.execute("SELECT * FROM customers")

        assert result.success
        assert result.column_names == ["id", "name"]
        assert result.rows == [{"id": "1", "name": "Smith, J"}, {"id": "2", "name": "Jones"}]
        assert result.row_count == 2
        assert result.execution_time_ms > 0

    @pytest.mark.asyncio
    async def test_sql_passed_unchanged(self, tmp_path):
        client = make_client(tmp_path, """printf '%s' "$4" > "$1.sql"\nprintf 'ok\\n1\\n'""")
        sql = """SELECT 'it''s', "quoted col", $$dollar$$ FROM t -- comment"""

        result = await client.execute(sql)

        assert result.success
        assert (tmp_path / "test.duckdb.sql").read_text() == sql

    @pytest.mark.asyncio
    async def test_stderr_takes_precedence(self, tmp_path):
        """Non-empty stderr is a failure even with exit code 0 and valid CSV."""
        client = make_client(tmp_path, "printf 'a\\n1\\n'\necho 'Parser Error: syntax error at or near \"SELEC\"' >&2\nexit 0")

        result = await client.execute("SELEC 1")

        assert not result.success
        assert result.error_text == 'Parser Error: syntax error at or near "SELEC"'
        assert result.rows == []
        assert result.row_count == 0

    @pytest.mark.asyncio
    async def test_nonzero_exit_without_stderr(self, tmp_path):
        client = make_client(tmp_path, "printf 'a\\n1\\n'\nexit 3")

        result = await client.execute("SELECT 1")

        assert not result.success
        assert result.error_text == "DuckDB exited with code 3"
        assert result.rows == []

    @pytest.mark.asyncio
    async def test_timeout_kills_and_reaps(self, tmp_path, monkeypatch):
        """A 5s query with a 1s timeout fails fast and leaves no zombie."""
        client = make_client(tmp_path, "exec sleep 5", timeout=1.0)

        spawned = []
        real_spawn = asyncio.create_subprocess_exec

        async def spy(*args, **kwargs):
            process = await real_spawn(*args, **kwargs)
            spawned.append(process)
            return process

        monkeypatch.setattr(asyncio, "create_subprocess_exec", spy)

        start = time.monotonic()
        result = await client.execute("SELECT slow()")
        elapsed = time.monotonic() - start

        assert not result.success
        assert result.timed_out
        assert "timeout" in result.error_text.lower()
        assert result.rows == []
        assert elapsed < 4.0
        assert result.execution_time_ms >= 1000

        assert len(spawned) == 1
        assert spawned[0].returncode is not None

    @pytest.mark.asyncio
    async def test_large_output_on_both_streams(self, tmp_path):
        """Both pipes are drained concurrently, so a chatty engine never blocks."""
        body = (
            "i=0\n"
            "echo n\n"
            "while [ $i -lt 20000 ]; do echo $i; echo warn-$i >&2; i=$((i+1)); done"
        )
        client = make_client(tmp_path, body, timeout=30.0)

        result = await client.execute("SELECT n")

        assert not result.success
        assert result.error_text.startswith("warn-0")

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        client = DuckDBCliClient(
            DuckDBConfig(executable_path=str(tmp_path / "no-such-duckdb"), database_path=str(tmp_path / "db"))
        )

        assert client.resolve_executable() is None
        assert not await client.test_connection()

        result = await client.execute("SELECT 1")
        assert not result.success
        assert result.error_text

        with pytest.raises(ConnectionUnavailableError):
            await client.ensure_connection()

    @pytest.mark.asyncio
    async def test_connection_with_stand_in(self, tmp_path):
        client = make_client(tmp_path, "printf 'test\\n1\\n'")
        assert await client.test_connection()

    @pytest.mark.asyncio
    async def test_connection_fails_on_engine_error(self, tmp_path):
        client = make_client(tmp_path, "echo 'IO Error: Cannot open database' >&2; exit 1")
        assert not await client.test_connection()


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("duckdb") is None, reason="duckdb is not installed")
class TestRealDuckDB:
    """Tests against an installed duckdb binary."""

    @pytest.fixture
    def client(self, tmp_path):
        return DuckDBCliClient(DuckDBConfig(database_path=str(tmp_path / "test.duckdb")))

    @pytest.mark.asyncio
    async def test_connection(self, client):
        assert await client.test_connection()

    @pytest.mark.asyncio
    async def test_select_with_special_characters(self, client):
        result = await client.execute(
            "SELECT 1 AS id, 'Smith, \"J\"' AS name, 'two' || chr(10) || 'lines' AS note"
        )

        assert result.success
        assert result.column_names == ["id", "name", "note"]
        assert result.rows == [{"id": "1", "name": 'Smith, "J"', "note": "two\nlines"}]

    @pytest.mark.asyncio
    async def test_syntax_error(self, client):
        result = await client.execute("SELEC 1")

        assert not result.success
        assert "syntax error" in result.error_text.lower()
