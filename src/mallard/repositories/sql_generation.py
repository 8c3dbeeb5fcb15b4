"""
SQL Generation Repository.

Handles LLM-based SQL generation for the conversation:
- System prompt building with schema context
- Conversation history + new user message
- Follow-up explanation requests

Every method returns an LLMReply; LLM failures are reported as
success=False instead of being raised, so one failed turn never ends
the session.
"""

from typing import List

from mallard.domain.base_enums import MessageRole
from mallard.domain.conversation import ConversationSnapshot, Message
from mallard.domain.errors import LLMError
from mallard.domain.replies import LLMReply
from mallard.infrastructure.llm_client import LLMClient
from mallard.repositories.schema_catalog import render_schema_context
from mallard.utils.logging import get_module_logger
from mallard.utils.tracing import current_trace_id

logger = get_module_logger()


SYSTEM_PROMPT_TEMPLATE = """You are a SQL assistant helping users write DuckDB queries. The user understands
basic SQL (joins, WHERE clauses) but is new to CTEs, subqueries, and window functions.

Your responses should:
1. Generate valid DuckDB SQL
2. Explain new concepts when you use them
3. Suggest optimizations when relevant
4. Format SQL clearly with proper indentation

When responding, use this format:
<explanation>
Brief explanation of the approach
</explanation>

<sql>
-- Your SQL query here
SELECT ...
</sql>

<teaching_note>
Optional: Explain any new SQL features used (CTEs, window functions, etc.)
</teaching_note>

Available schema:
{schema_context}"""

EXPLAIN_PROMPT_TEMPLATE = (
    "Please explain this DuckDB SQL query in detail, including what it does "
    "and any advanced features it uses:\n\n{sql}"
)


class SQLGenerationRepository:
    """
    Repository for LLM-based SQL generation.

    Handles prompt construction and LLM interaction. Receives read-only
    conversation snapshots and never modifies conversation state.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    async def send_message(self, user_message: str, snapshot: ConversationSnapshot) -> LLMReply:
        """
        Ask the LLM to answer a new user message in the context of the conversation.

        Args:
            user_message: Natural language request
            snapshot: History and schemas at the time of the request

        Returns:
            LLMReply with the raw reply text or the failure reason
        """
        trace_id = current_trace_id()

        system_prompt = self.build_system_prompt(snapshot)
        messages = self.build_messages(snapshot, user_message)

        logger.debug(
            "Calling LLM for SQL generation",
            history_length=len(snapshot.history),
            table_count=len(snapshot.schemas),
            trace_id=trace_id,
        )

        return await self._generate(messages, system_prompt)

    async def explain_query(self, sql: str, snapshot: ConversationSnapshot) -> LLMReply:
        """
        Ask the LLM to explain a SQL query in detail.

        The request uses the conversation as context but is not part of it.

        Args:
            sql: Query to explain (never empty)
            snapshot: History and schemas at the time of the request

        Returns:
            LLMReply with the explanation or the failure reason
        """
        logger.debug("Calling LLM for query explanation", sql_length=len(sql), trace_id=current_trace_id())

        explain_message = EXPLAIN_PROMPT_TEMPLATE.format(sql=sql)
        return await self._generate(
            self.build_messages(snapshot, explain_message),
            self.build_system_prompt(snapshot),
        )

    @staticmethod
    def build_system_prompt(snapshot: ConversationSnapshot) -> str:
        """Build the system prompt with the schema context appended."""
        return SYSTEM_PROMPT_TEMPLATE.format(schema_context=render_schema_context(snapshot.schemas))

    @staticmethod
    def build_messages(snapshot: ConversationSnapshot, user_message: str) -> List[Message]:
        """Full history followed by the new user message."""
        messages = list(snapshot.history)
        messages.append(Message(role=MessageRole.USER, content=user_message))
        return messages

    async def _generate(self, messages: List[Message], system_prompt: str) -> LLMReply:
        try:
            text = await self.llm_client.generate(messages, system_prompt=system_prompt)
        except LLMError as e:
            return LLMReply.failure(e.message)
        return LLMReply.ok(text)
