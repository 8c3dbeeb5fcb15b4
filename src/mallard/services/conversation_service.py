"""
Conversation Service - interactive loop of the SQL assistant.

Sequences one session:
1. Read a line and classify it into a Command
2. Commands (help, schema, history, clear, export, explain) run directly
3. Natural language goes to the LLM; the reply is parsed into
   explanation / SQL / teaching note
4. Generated SQL is shown and the user confirms (y), explains (e) or
   declines (anything else)
5. Confirmed SQL is executed, recorded and displayed

Key principles:
- The service owns the ConversationContext; collaborators only see snapshots
- Every per-turn failure is a MallardError reported at the turn boundary;
  the loop always returns to AWAITING_INPUT
- Only "exit", "quit" or end of input leave the loop
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple, assert_never

from rich.console import Console
from rich.table import Table
from rich.text import Text

from mallard.config import ConversationConfig
from mallard.domain.base_enums import ConfirmChoice, ConversationState
from mallard.domain.commands import (
    HELP_TEXT,
    Clear,
    Command,
    Exit,
    Explain,
    Export,
    Help,
    History,
    NaturalLanguage,
    Schema,
    classify_command,
)
from mallard.domain.conversation import ConversationContext, ExecutedQuery
from mallard.domain.errors import (
    LLMError,
    MalformedReplyError,
    MallardError,
    NoDataToExportError,
    NoQueryToExplainError,
)
from mallard.domain.replies import AssistantReply
from mallard.domain.results import QueryResult
from mallard.infrastructure.query_executor import QueryExecutor
from mallard.repositories.sql_generation import SQLGenerationRepository
from mallard.services.export_service import SpreadsheetExporter
from mallard.utils.logging import get_module_logger
from mallard.utils.text_utils import preview, truncate_cell
from mallard.utils.tracing import current_trace_id, start_turn_trace

logger = get_module_logger()

PROMPT = "\n> "
CONFIRM_PROMPT = "Execute this query? (y/n/e for explain): "

# Reported as plain notices rather than errors
NOTICE_ERRORS = (MalformedReplyError, NoDataToExportError, NoQueryToExplainError)


class ConversationService:
    """
    Interactive session orchestrator.

    Usage:
        service = ConversationService(executor, generator, exporter, context, config, console)
        await service.run()
    """

    def __init__(
        self,
        executor: QueryExecutor,
        generator: SQLGenerationRepository,
        exporter: SpreadsheetExporter,
        context: ConversationContext,
        config: Optional[ConversationConfig] = None,
        console: Optional[Console] = None,
        input_fn: Callable[[], str] = input,
    ):
        self.executor = executor
        self.generator = generator
        self.exporter = exporter
        self.context = context
        self.config = config or ConversationConfig()
        self.console = console or Console()
        self.input_fn = input_fn

        self.state = ConversationState.AWAITING_INPUT
        # SQL and result of the most recent execution attempt
        self._last_execution: Optional[Tuple[str, QueryResult]] = None

        logger.info(
            "ConversationService initialized",
            executor_type=executor.executor_type,
            table_count=len(context.schemas),
            display_row_limit=self.config.display_row_limit,
        )

    @property
    def last_result(self) -> Optional[QueryResult]:
        return self._last_execution[1] if self._last_execution else None

    @property
    def last_sql(self) -> Optional[str]:
        return self._last_execution[0] if self._last_execution else None

    # =========================================================================
    # Loop
    # =========================================================================

    async def run(self) -> None:
        """Run the session until exit, quit or end of input."""
        self.show_welcome()

        while self.state != ConversationState.EXITED:
            line = self._read(PROMPT)
            if line is None:
                self.state = ConversationState.EXITED
                self._say("\nGoodbye!")
                break

            if not line.strip():
                continue

            await self.handle_input(line)

        logger.info("Conversation ended", executed_queries=len(self.context.query_history))

    async def handle_input(self, text: str) -> bool:
        """
        Handle one line of input.

        Args:
            text: Non-blank input line

        Returns:
            False once the session should end, True otherwise
        """
        trace_id = start_turn_trace()
        command = classify_command(text)

        logger.debug("Handling input", command=type(command).__name__, trace_id=trace_id)

        try:
            await self.dispatch(command)
        except NOTICE_ERRORS as e:
            self._say(e.message, style="yellow")
        except MallardError as e:
            logger.warning("Turn failed", **e.to_dict(), trace_id=trace_id)
            self._say(f"Error: {e.message}", style="red")
        finally:
            if self.state != ConversationState.EXITED:
                self.state = ConversationState.AWAITING_INPUT

        return self.state != ConversationState.EXITED

    async def dispatch(self, command: Command) -> None:
        """Run one classified command."""
        if not isinstance(command, NaturalLanguage):
            self.state = ConversationState.DISPATCHING_COMMAND

        match command:
            case Exit():
                self.state = ConversationState.EXITED
                self._say("\nGoodbye!")
            case Help():
                self.show_help()
            case Schema():
                self.show_schema()
            case History():
                self.show_history()
            case Clear():
                self.context.clear_history()
                self._say("\nConversation history cleared.")
            case Export(filename=filename):
                self.export_results(filename)
            case Explain(sql=sql):
                await self.explain(sql)
            case NaturalLanguage(text=text):
                await self.handle_request(text)
            case _:
                assert_never(command)

    # =========================================================================
    # Natural language turn
    # =========================================================================

    async def handle_request(self, user_message: str) -> None:
        """
        Generate SQL for a request, then confirm and execute it.

        Raises:
            LLMError: If the LLM call failed (history is left unchanged)
            MalformedReplyError: If the reply contains no SQL
        """
        self.state = ConversationState.GENERATING
        self._say("\nGenerating query...\n")

        llm_reply = await self.generator.send_message(user_message, self.context.snapshot())
        if not llm_reply.success:
            raise LLMError(llm_reply.error)

        self.context.record_turn(user_message, llm_reply.raw_text)
        reply = AssistantReply.from_llm_response(llm_reply.raw_text)

        logger.info(
            "Assistant reply parsed",
            has_sql=reply.has_sql,
            has_teaching_note=bool(reply.teaching_note),
            history_length=len(self.context.history),
            trace_id=current_trace_id(),
        )

        self.show_reply(reply)

        if not reply.has_sql:
            raise MalformedReplyError()

        self.state = ConversationState.CONFIRM_EXECUTE
        answer = self._read(CONFIRM_PROMPT)
        choice = ConfirmChoice.from_answer(answer or "")

        if choice == ConfirmChoice.EXECUTE:
            await self.execute(reply.sql)
        elif choice == ConfirmChoice.EXPLAIN:
            await self.explain(reply.sql)
        else:
            self.state = ConversationState.SKIPPED
            logger.debug("Query declined", trace_id=current_trace_id())

    def show_reply(self, reply: AssistantReply) -> None:
        if reply.explanation:
            self._say("Explanation:", style="bold")
            self._say(reply.explanation)
            self._say("")

        if reply.has_sql:
            self._say("SQL:", style="bold")
            self._say(reply.sql, style="cyan")
            self._say("")

            if reply.teaching_note:
                self._say("💡 Teaching Note:", style="bold")
                self._say(reply.teaching_note)
                self._say("")

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute(self, sql: str) -> QueryResult:
        """
        Execute SQL, record the attempt and display the result.

        Raises:
            QueryExecutionError: If the engine reported an error
            ExecutionTimeoutError: If the query exceeded the timeout
        """
        self.state = ConversationState.EXECUTING
        self._say("\nExecuting...\n")

        result = await self.executor.execute(sql)

        self._last_execution = (sql, result)
        self.context.query_history.append(
            ExecutedQuery(
                sql=sql,
                executed_at=datetime.now(),
                success=result.success,
                row_count=result.row_count,
            )
        )

        result.raise_for_status()

        self.state = ConversationState.DISPLAYING
        self.show_result(result)
        self._say(f"\nExecuted in {result.execution_time_ms:.2f}ms")
        return result

    def show_result(self, result: QueryResult) -> None:
        """Print the first rows of a successful result as a table."""
        if result.row_count == 0:
            self._say("No results.")
            return

        limit = self.config.display_row_limit
        max_width = self.config.max_cell_width

        table = Table(title=f"Results ({result.row_count} rows)", title_justify="left")
        for name in result.column_names:
            table.add_column(Text(name), overflow="fold")

        for row in result.rows[:limit]:
            table.add_row(*(Text(truncate_cell(row.get(name), max_width)) for name in result.column_names))

        self.console.print(table)

        if result.row_count > limit:
            self._say(f"\n... and {result.row_count - limit} more rows")

        if result.dropped_row_count:
            self._say(
                f"Warning: {result.dropped_row_count} malformed rows were dropped from the output.",
                style="yellow",
            )

    # =========================================================================
    # Commands
    # =========================================================================

    async def explain(self, sql: Optional[str]) -> None:
        """
        Ask the LLM to explain SQL (or the last executed query).

        Raises:
            NoQueryToExplainError: If there is nothing to explain
            LLMError: If the LLM call failed
        """
        target = sql or self._last_executed_sql()
        if not target:
            raise NoQueryToExplainError()

        self._say("\nAsking the assistant to explain this query...\n")

        llm_reply = await self.generator.explain_query(target, self.context.snapshot())
        if not llm_reply.success:
            raise LLMError(llm_reply.error)

        self._say(llm_reply.raw_text)

    def export_results(self, filename: Optional[str]) -> Path:
        """
        Export the last result to a spreadsheet.

        Raises:
            NoDataToExportError: If no successful, non-empty result is retained
            ExportError: If the file could not be written
        """
        if self._last_execution is None:
            raise NoDataToExportError()

        sql, result = self._last_execution
        if not result.success or not result.has_rows:
            raise NoDataToExportError()

        self._say("\nExporting to Excel...")
        path = self.exporter.export(result, filename or self.exporter.default_filename(), sql)

        self._say(f"✓ Created: {path}", style="green")
        self._say(f"  - Results sheet: {result.row_count} rows, {len(result.column_names)} columns")
        self._say("  - Query Info sheet: metadata and SQL")
        return path

    def show_welcome(self) -> None:
        self._say("\nMallard - DuckDB SQL Assistant", style="bold")
        self._say(f"\nLoaded {len(self.context.schemas)} tables")
        self._say("\nType 'help' for commands or describe what you want to query.")

    def show_help(self) -> None:
        width = max(len(command) for command, _ in HELP_TEXT)
        self._say("\nAvailable Commands:")
        for command, description in HELP_TEXT:
            self._say(f"  {command.ljust(width)} - {description}")
        self._say("\nOr just type your question in natural language!")

    def show_schema(self) -> None:
        if not self.context.schemas:
            self._say("\nNo tables loaded.")
            return

        self._say("\nAvailable Tables:\n")
        for schema in self.context.schemas.values():
            self._say(f"📊 {schema.table_name}", style="bold")
            self._say(f"   Source: {Path(schema.source_identifier).name}")
            self._say(f"   Columns ({len(schema.columns)}):")
            for column in schema.columns:
                nullable = "nullable" if column.nullable else "not null"
                self._say(f"     - {column.name}: {column.declared_type} ({nullable})")
            self._say("")

    def show_history(self) -> None:
        if not self.context.query_history:
            self._say("\nNo query history yet.")
            return

        self._say("\nQuery History:\n")
        for query in self.context.query_history[-self.config.history_display_limit:]:
            status = "✓" if query.success else "✗"
            self._say(f"{status} [{query.executed_at:%H:%M:%S}] {query.row_count} rows")
            self._say(f"  {preview(query.sql, self.config.history_sql_preview_chars)}")
            self._say("")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _last_executed_sql(self) -> Optional[str]:
        if self.context.query_history:
            return self.context.query_history[-1].sql
        return None

    def _read(self, prompt: str) -> Optional[str]:
        """Prompt for one line; None at end of input."""
        self.console.print(prompt, end="", markup=False, highlight=False)
        try:
            return self.input_fn().strip()
        except EOFError:
            return None

    def _say(self, text: str, style: Optional[str] = None) -> None:
        # Engine errors and LLM text may contain square brackets
        self.console.print(text, style=style, markup=False, highlight=False)
