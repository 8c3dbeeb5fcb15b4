"""
Integration tests for LLMClient connection and SQL generation.

This module verifies connectivity to the OpenRouter API and the tagged reply
format end to end. Tests are skipped when LLM__OPENROUTER_API_KEY is not set.

Usage:
    # Run all LLM connection tests
    pytest tests/integration/test_llm_connection.py -v

    # Run specific test
    pytest tests/integration/test_llm_connection.py::TestLLMConnection::test_basic_connection -v
"""

import pytest
from pydantic import ValidationError

from mallard.config import get_settings
from mallard.domain.base_enums import MessageRole
from mallard.domain.conversation import ConversationContext, Message
from mallard.domain.replies import AssistantReply
from mallard.domain.schemas import ColumnInfo, TableSchema
from mallard.infrastructure.llm_client import LLMClient
from mallard.repositories.sql_generation import SQLGenerationRepository


def _load_llm_config():
    try:
        return get_settings().llm
    except ValidationError:
        return None


LLM_CONFIG = _load_llm_config()

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(LLM_CONFIG is None, reason="LLM__OPENROUTER_API_KEY is not set"),
]


@pytest.fixture
def llm_config():
    """Get LLM configuration from settings."""
    return LLM_CONFIG


class TestLLMConnection:
    """Integration tests for LLM client connectivity."""

    @pytest.mark.asyncio
    async def test_basic_connection(self, llm_config):
        """Test basic LLM client connection and disconnection."""
        client = LLMClient(llm_config)

        # Test connection
        await client.connect()
        assert client.is_connected()

        # Test disconnection
        await client.close()
        assert not client.is_connected()

    @pytest.mark.asyncio
    async def test_generate_simple_text(self, llm_config):
        """Test simple text generation."""
        client = LLMClient(llm_config)
        await client.connect()

        response = await client.generate(
            [Message(role=MessageRole.USER, content="What is 2 + 2? Answer with just the number.")],
            max_tokens=20,
        )

        assert "4" in response
        await client.close()

    @pytest.mark.asyncio
    async def test_multi_turn(self, llm_config):
        """Earlier turns are visible to the model."""
        client = LLMClient(llm_config)
        await client.connect()

        response = await client.generate(
            [
                Message(role=MessageRole.USER, content="Remember the word 'mallard'."),
                Message(role=MessageRole.ASSISTANT, content="I will remember 'mallard'."),
                Message(role=MessageRole.USER, content="Which word did I ask you to remember? Answer with the word only."),
            ],
            max_tokens=20,
        )

        assert "mallard" in response.lower()
        await client.close()


class TestSQLGeneration:
    """End-to-end tagged reply format."""

    @pytest.mark.asyncio
    async def test_reply_contains_sql(self, llm_config):
        client = LLMClient(llm_config)
        await client.connect()

        context = ConversationContext(
            schemas={
                "customers": TableSchema(
                    table_name="customers",
                    source_identifier="customers.parquet",
                    columns=[ColumnInfo(name="id", declared_type="BIGINT"), ColumnInfo(name="name", declared_type="VARCHAR")],
                )
            }
        )

        reply = await SQLGenerationRepository(client).send_message("show all customer names", context.snapshot())
        parsed = AssistantReply.from_llm_response(reply.raw_text)

        assert reply.success
        assert parsed.has_sql
        assert "customers" in parsed.sql.lower()
        await client.close()
