"""Unit tests for the SQL generation repository and LLM message conversion."""

from types import MappingProxyType
from typing import List, Optional, Sequence

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from mallard.config import LLMConfig
from mallard.domain.base_enums import MessageRole
from mallard.domain.conversation import ConversationContext, Message
from mallard.domain.errors import LLMError
from mallard.domain.schemas import ColumnInfo, TableSchema
from mallard.infrastructure.llm_client import LLMClient
from mallard.repositories.sql_generation import SQLGenerationRepository


class FakeLLMClient:
    """Records calls and returns a canned reply or raises."""

    def __init__(self, reply: str = "<sql>SELECT 1</sql>", error: Optional[str] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def generate(self, messages: Sequence[Message], system_prompt: Optional[str] = None) -> str:
        self.calls.append({"messages": list(messages), "system_prompt": system_prompt})
        if self.error:
            raise LLMError(self.error)
        return self.reply


@pytest.fixture
def context():
    context = ConversationContext(
        schemas={
            "customers": TableSchema(
                table_name="customers",
                source_identifier="customers.parquet",
                columns=[ColumnInfo(name="id", declared_type="BIGINT"), ColumnInfo(name="name", declared_type="VARCHAR")],
            )
        }
    )
    context.record_turn("count customers", "<sql>SELECT COUNT(*) FROM customers</sql>")
    return context


class TestSQLGenerationRepository:
    """Tests for SQLGenerationRepository."""

    @pytest.mark.asyncio
    async def test_send_message_includes_history_and_schema(self, context):
        llm = FakeLLMClient()
        repository = SQLGenerationRepository(llm)

        reply = await repository.send_message("show customers", context.snapshot())

        assert reply.success
        assert reply.raw_text == "<sql>SELECT 1</sql>"

        call = llm.calls[0]
        assert [message.role for message in call["messages"]] == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.USER,
        ]
        assert call["messages"][-1].content == "show customers"
        assert "- customers (id BIGINT, name VARCHAR)" in call["system_prompt"]
        assert "<teaching_note>" in call["system_prompt"]

    @pytest.mark.asyncio
    async def test_send_message_does_not_modify_context(self, context):
        repository = SQLGenerationRepository(FakeLLMClient())

        await repository.send_message("show customers", context.snapshot())

        assert len(context.history) == 2

    @pytest.mark.asyncio
    async def test_failure_returned_not_raised(self, context):
        repository = SQLGenerationRepository(FakeLLMClient(error="LLM generation failed: 503"))

        reply = await repository.send_message("show customers", context.snapshot())

        assert not reply.success
        assert reply.error == "LLM generation failed: 503"

    @pytest.mark.asyncio
    async def test_explain_query(self, context):
        llm = FakeLLMClient(reply="This query counts rows.")
        repository = SQLGenerationRepository(llm)

        reply = await repository.explain_query("SELECT COUNT(*) FROM customers", context.snapshot())

        assert reply.raw_text == "This query counts rows."
        last_message = llm.calls[0]["messages"][-1].content
        assert last_message.startswith("Please explain this DuckDB SQL query in detail")
        assert last_message.endswith("SELECT COUNT(*) FROM customers")
        assert len(context.history) == 2

    def test_system_prompt_without_schemas(self):
        prompt = SQLGenerationRepository.build_system_prompt(ConversationContext().snapshot())
        assert prompt.endswith("No schema information available yet.")


class TestSnapshot:
    """Collaborators get a read-only view of the conversation."""

    def test_snapshot_is_read_only(self, context):
        snapshot = context.snapshot()

        assert isinstance(snapshot.schemas, MappingProxyType)
        with pytest.raises(TypeError):
            snapshot.schemas["other"] = None

    def test_snapshot_does_not_follow_later_changes(self, context):
        snapshot = context.snapshot()
        context.record_turn("again", "<sql>SELECT 2</sql>")

        assert len(snapshot.history) == 2

    def test_clear_keeps_schemas_and_query_history(self, context):
        context.clear_history()

        assert context.history == []
        assert "customers" in context.schemas


class TestLLMClient:
    """LLMClient behaviour that needs no network."""

    def test_to_langchain_messages(self):
        converted = LLMClient.to_langchain_messages(
            [Message(role=MessageRole.USER, content="hi"), Message(role=MessageRole.ASSISTANT, content="hello")],
            system_prompt="be brief",
        )

        assert [type(message) for message in converted] == [SystemMessage, HumanMessage, AIMessage]
        assert converted[1].content == "hi"

    def test_to_langchain_messages_without_system_prompt(self):
        converted = LLMClient.to_langchain_messages([Message(role=MessageRole.USER, content="hi")])
        assert [type(message) for message in converted] == [HumanMessage]

    @pytest.mark.asyncio
    async def test_generate_requires_connection(self):
        client = LLMClient(LLMConfig(openrouter_api_key="sk-test"))

        with pytest.raises(LLMError, match="not connected"):
            await client.generate([Message(role=MessageRole.USER, content="hi")])

    @pytest.mark.asyncio
    async def test_generate_rejects_oversized_conversation(self):
        client = LLMClient(LLMConfig(openrouter_api_key="sk-test", max_input_chars=10))
        await client.connect()

        with pytest.raises(LLMError, match="Conversation too large"):
            await client.generate([Message(role=MessageRole.USER, content="x" * 20)])

        await client.close()
        assert not client.is_connected()
